import io

from ddnskit.file import read_string
from ddnskit.pp import PP


def _write(root, relative, content):
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


def test_read_string_okay(tmp_path):
    _write(tmp_path, "test/file.txt", " hello world   ")
    buf = io.StringIO()
    content = read_string(PP(buf), "test/file.txt", tmp_path)
    assert content == "hello world"
    assert buf.getvalue() == ""


def test_read_string_wrong_path(tmp_path):
    buf = io.StringIO()
    content = read_string(PP(buf), "wrong/path.txt", tmp_path)
    assert content is None
    assert buf.getvalue().startswith('😡 Failed to read "wrong/path.txt": ')


def test_read_string_directory(tmp_path):
    _write(tmp_path, "dir/file.txt", "hello")
    buf = io.StringIO()
    content = read_string(PP(buf), "dir", tmp_path)
    assert content is None
    assert buf.getvalue().startswith('😡 Failed to read "dir": ')


def test_read_string_okay_absolute_path(tmp_path):
    _write(tmp_path, "test/file.txt", " hello world   ")
    content = read_string(PP(io.StringIO()), "/test/file.txt", tmp_path)
    assert content == "hello world"


def test_read_string_default_root_absolute(tmp_path):
    _write(tmp_path, "x.txt", "\n value \n")
    content = read_string(PP(io.StringIO()), str(tmp_path / "x.txt"))
    assert content == "value"