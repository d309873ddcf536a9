from pathlib import Path

from bdaa.config.audio import MuxAudioType
from bdaa.services.chapter_writer import write_chapters
from bdaa.services.mux_descriptor import chapter_to_whole_seconds, custom_chapter_times, render_meta, write_meta


def test_chapter_to_whole_seconds_rounds_half_up():
    assert chapter_to_whole_seconds("00:03:12.500") == "00:03:13"
    assert chapter_to_whole_seconds("00:03:12.499") == "00:03:12"
    assert chapter_to_whole_seconds("00:59:59.999") == "01:00:00"
    assert chapter_to_whole_seconds("junk") == ""


def test_custom_chapter_times_skips_blank_lines():
    text = "00:00:00.000 Chapter 01\n\n00:01:40.600 Chapter 02\n"
    assert custom_chapter_times(text) == ["00:00:00", "00:01:41"]


def test_render_meta_lpcm_elementary_streams():
    meta = render_meta(Path("/w/v.h264"), Path("/w/a.wav"), MuxAudioType.LPCM, "23.976", ["00:00:00", "00:01:40"])

    assert meta == (
        "MUXOPT --blu-ray --vbr 20000 --auto-chapters=0 --custom-chapters=00:00:00;00:01:40\n"
        "V_MPEG4/ISO/AVC, /w/v.h264, fps=23.976, level=4.1\n"
        "A_LPCM, /w/a.wav, bitDepth=24, lang=eng\n"
    )


def test_render_meta_adds_track_selector_for_containers():
    meta = render_meta(Path("/w/v.mp4"), Path("/w/a.mkv"), MuxAudioType.TRUEHD, "24")

    lines = meta.splitlines()
    assert lines[0] == "MUXOPT --blu-ray --vbr 20000 --auto-chapters=0"
    assert lines[1] == "V_MPEG4/ISO/AVC, /w/v.mp4, track=1, fps=24, level=4.1"
    assert lines[2] == "A_TRUEHD, /w/a.mkv, track=1, lang=eng"


def test_render_meta_dtshd_has_no_bit_depth():
    meta = render_meta(Path("/w/v.h264"), Path("/w/a.dtshd"), MuxAudioType.DTSHD, "23.976")
    assert meta.splitlines()[2] == "A_DTSHD, /w/a.dtshd, lang=eng"


def test_write_meta_next_to_video(tmp_path):
    video = tmp_path / "black_30s.h264"
    audio = tmp_path / "program_lpcm.wav"
    chapters = write_chapters([12.6, 17.4], tmp_path)

    path = write_meta(video, audio, MuxAudioType.LPCM, "23.976", chapters)

    assert path == tmp_path / "author.meta"
    text = path.read_bytes().decode("utf-8")
    assert "\r" not in text
    assert text.startswith("MUXOPT --blu-ray --vbr 20000 --auto-chapters=0 --custom-chapters=00:00:00;00:00:13\n")
    assert render_meta(video, audio, MuxAudioType.LPCM, "23.976", ["00:00:00", "00:00:13"]) == text
