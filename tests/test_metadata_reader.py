from types import SimpleNamespace

from bdaa.services import metadata_reader
from bdaa.services.metadata_reader import _first_value, parse_track_number, placeholder_metadata, read_metadata


class Frame:
    """Looks like an ID3 frame: the values live in `.text`."""

    def __init__(self, *text):
        self.text = list(text)


def _fake_open(easy_tags, raw_tags):
    def fake_file(path, easy=False):
        tags = easy_tags if easy else raw_tags
        return None if tags is None else SimpleNamespace(tags=tags)

    return fake_file


def test_parse_track_number():
    assert parse_track_number("3/12") == 3
    assert parse_track_number("03") == 3
    assert parse_track_number("") is None
    assert parse_track_number("A1") is None


def test_first_value():
    assert _first_value(Frame("Title")) == "Title"
    assert _first_value(["  x  "]) == "x"
    assert _first_value([(7, 12)]) == "7"
    assert _first_value([]) is None
    assert _first_value(None) is None


def test_easy_tags_win(monkeypatch, tmp_path):
    monkeypatch.setattr(
        metadata_reader.mutagen,
        "File",
        _fake_open({"title": ["Easy Title"], "artist": ["Easy Artist"]}, {"TIT2": Frame("Raw Title")}),
    )
    md = read_metadata(tmp_path / "song.mp3", 4)
    assert md.title == "Easy Title"
    assert md.artist == "Easy Artist"
    assert md.album == "Unknown Album"
    assert md.track_number == 1


def test_raw_frames_fill_missing_fields(monkeypatch, tmp_path):
    raw = {"TALB": Frame("Raw Album"), "TRCK": Frame("5/10"), "\xa9ART": ["Mp4 Artist"]}
    monkeypatch.setattr(metadata_reader.mutagen, "File", _fake_open({"title": ["Song"]}, raw))

    md = read_metadata(tmp_path / "song.m4a", 1)

    assert md.title == "Song"
    assert md.artist == "Mp4 Artist"
    assert md.album == "Raw Album"
    assert md.track_number == 5


def test_untagged_file_uses_stem(monkeypatch, tmp_path):
    monkeypatch.setattr(metadata_reader.mutagen, "File", _fake_open({}, {}))
    md = read_metadata(tmp_path / "03 Quiet Piece.wav", 3)
    assert md.title == "03 Quiet Piece"
    assert md.artist == "Unknown Artist"


def test_unreadable_file_gets_placeholder(tmp_path):
    path = tmp_path / "noise.flac"
    path.write_bytes(b"definitely not flac")
    assert read_metadata(path, 2) == placeholder_metadata(2)
    assert placeholder_metadata(2).title == "Track 2"
