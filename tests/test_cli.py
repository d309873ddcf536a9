import pytest

import main
from bdaa.cli import expand_inputs, get_args
from bdaa.utils.format_utils import format_seconds, formatted_size


@pytest.fixture
def album(tmp_path):
    folder = tmp_path / "album"
    folder.mkdir()
    for name in ("02 Two.flac", "01 One.FLAC", "cover.jpg", "notes.txt"):
        (folder / name).write_bytes(b"x")
    return folder


def test_expand_inputs_keeps_audio_only(album, tmp_path):
    loose = tmp_path / "bonus.wav"
    assert expand_inputs([album, loose]) == [album / "01 One.FLAC", album / "02 Two.flac", loose]


def test_build_args(album, tmp_path):
    args = get_args(["--debug", "build", str(album), "-o", str(tmp_path / "out"), "--codec", "truehd", "--lpcm-format", "24/96"])

    assert args.command == "build"
    assert args.log_level == "DEBUG"
    assert args.codec == "truehd"
    assert args.lpcm_format == "24/96"
    assert len(args.files) == 2
    assert args.black_video is False
    assert args.disc == "bd25"


def test_empty_directory_is_an_error(tmp_path):
    with pytest.raises(SystemExit):
        get_args(["probe", str(tmp_path)])


def test_negative_glow_is_an_error(album):
    with pytest.raises(SystemExit):
        get_args(["build", str(album), "--glow-intensity", "-1"])


def test_build_options_from_args(album, tmp_path, user_config):
    args = get_args(["build", str(album), "-o", str(tmp_path / "out"), "--black-video", "--background", "gradient",
                     "--show-artist", "--artist", "Someone", "--disc", "bd50"])
    options = main._build_options(args, user_config)

    assert options.lpcm_format is None
    assert options.use_custom_video is False
    assert options.frame_style.background_type.value == "gradient"
    assert options.frame_style.custom_artist == "Someone"
    assert options.target_disc.bytes == 50_000_000_000
    assert options.output_dir == (tmp_path / "out").resolve()


def test_build_without_output_dir_fails(album, tmp_path):
    config = tmp_path / "empty.yaml"
    assert main.main(["--config", str(config), "build", str(album)]) == main.EXIT_FAILED


def test_burn_folder_without_bdmv_fails(tmp_path):
    folder = tmp_path / "not_a_disc"
    folder.mkdir()
    assert main.main(["burn", str(folder)]) == main.EXIT_FAILED


def test_format_helpers():
    assert format_seconds(0) == "0:00"
    assert format_seconds(65.4) == "1:05"
    assert format_seconds(3725) == "1:02:05"
    assert formatted_size(999) == "999 B"
    assert formatted_size(1500) == "1.50 KB"
    assert formatted_size(25_000_000_000) == "25 GB"
