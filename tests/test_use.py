import io

from statora.use import build_path_export, is_terminal, print_use, strip_statora_dirs


def test_strip_statora_dirs():
    path = (
        "/home/user/.statora/runtimes/php/8.1.20/bin:/usr/bin:"
        "/home/user/.statora/composer/2.2.8/bin:/bin"
    )
    assert strip_statora_dirs(path, "/home/user") == "/usr/bin:/bin"


def test_strip_statora_dirs_nothing_to_strip():
    assert strip_statora_dirs("/usr/bin:/bin", "/home/user") == "/usr/bin:/bin"


def test_strip_statora_dirs_drops_empty_entries():
    assert strip_statora_dirs("/usr/bin::/bin:", "/home/user") == "/usr/bin:/bin"


def test_build_path_export_bash():
    out = build_path_export("bash", "/php/bin", "/composer/bin", "/usr/bin:/bin")
    assert out.strip() == 'export PATH="/php/bin:/composer/bin:/usr/bin:/bin"'


def test_build_path_export_zsh():
    out = build_path_export("zsh", "/php/bin", "/composer/bin", "/usr/bin:/bin")
    assert out.strip() == 'export PATH="/php/bin:/composer/bin:/usr/bin:/bin"'


def test_build_path_export_fish():
    out = build_path_export("fish", "/php/bin", "/composer/bin", "/usr/bin:/bin")
    assert out.strip() == "set -gx PATH /php/bin /composer/bin /usr/bin /bin"


def test_build_path_export_empty_path():
    assert build_path_export("bash", "/p", "/c", "") == 'export PATH="/p:/c"\n'
    assert build_path_export("fish", "/p", "/c", "") == "set -gx PATH /p /c\n"


def test_build_path_export_escapes_quotes():
    out = build_path_export("bash", '/a"b', "/c", "")
    assert out == 'export PATH="/a\\"b:/c"\n'


def test_print_use():
    buf = io.StringIO()
    print_use(
        buf,
        "bash",
        "/php/bin",
        "/composer/bin",
        "/home/user/.statora/runtimes/php/8.1.20/bin:/usr/bin",
        "/home/user",
    )
    assert buf.getvalue() == 'export PATH="/php/bin:/composer/bin:/usr/bin"\n'


def test_is_terminal_regular_file(tmp_path):
    path = tmp_path / "f.txt"
    path.write_text("x")
    with path.open() as handle:
        assert is_terminal(handle) is False


def test_is_terminal_without_fileno():
    assert is_terminal(io.StringIO()) is False