from cliptrim.services.delivery import FileSink


def test_deliver_creates_directory(tmp_path):
    sink = FileSink(tmp_path / "exports" / "today")
    path = sink.deliver(b"abc", "trimmed-video.mp4")
    assert path == tmp_path / "exports" / "today" / "trimmed-video.mp4"
    assert path.read_bytes() == b"abc"


def test_existing_files_are_kept(tmp_path):
    sink = FileSink(tmp_path)
    first = sink.deliver(b"1", "trimmed-video.mp4")
    second = sink.deliver(b"2", "trimmed-video.mp4")
    third = sink.deliver(b"3", "trimmed-video.mp4")
    assert [p.name for p in (first, second, third)] == [
        "trimmed-video.mp4",
        "trimmed-video (1).mp4",
        "trimmed-video (2).mp4",
    ]
    assert first.read_bytes() == b"1"


def test_filename_cannot_escape_directory(tmp_path):
    sink = FileSink(tmp_path / "out")
    path = sink.deliver(b"x", "../../evil.mp4")
    assert path.parent == tmp_path / "out"
