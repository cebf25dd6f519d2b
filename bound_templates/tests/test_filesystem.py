import pytest

from bound_templates.app.filesystem import DirectoryFilesystem, MemoryFilesystem
from bound_templates.app.registry.registry import new_registry
from bound_templates.app.services.context import RenderContext


# ----------------------------------------------------------------------
# MemoryFilesystem
# ----------------------------------------------------------------------

def test_memory_read_and_normalize():
    fs = MemoryFilesystem({"templates/home.html": "hi", "./templates//raw.bin": b"\x00"})

    assert fs.read_file("templates/home.html") == b"hi"
    assert fs.read_file("templates/raw.bin") == b"\x00"


def test_memory_missing_file():
    with pytest.raises(FileNotFoundError):
        MemoryFilesystem({}).read_file("templates/none.html")


def test_memory_copies_mapping():
    files = {"a.html": "one"}
    fs = MemoryFilesystem(files)
    files["a.html"] = "two"

    assert fs.read_file("a.html") == b"one"


def test_memory_walk_yields_implied_directories():
    fs = MemoryFilesystem(
        {
            "templates/home.html": "",
            "templates/about/team.html": "",
            "other/x.html": "",
        }
    )

    assert list(fs.walk("templates")) == [
        ("templates/about", True),
        ("templates/about/team.html", False),
        ("templates/home.html", False),
    ]


# ----------------------------------------------------------------------
# DirectoryFilesystem
# ----------------------------------------------------------------------

@pytest.fixture
def site(tmp_path):
    (tmp_path / "templates" / "about").mkdir(parents=True)
    (tmp_path / "templates" / "home.html").write_text("<h1>{{ title }}</h1>")
    (tmp_path / "templates" / "about" / "team.html").write_text("team")
    (tmp_path / "secret.txt").write_text("secret")
    return tmp_path


def test_directory_read(site):
    fs = DirectoryFilesystem(site)

    assert fs.read_file("templates/home.html") == b"<h1>{{ title }}</h1>"


@pytest.mark.parametrize(
    "path",
    ["templates/missing.html", "../secret.txt", "templates/../../etc/passwd", "/etc/passwd"],
)
def test_directory_rejects_missing_and_escaping_paths(site, path):
    fs = DirectoryFilesystem(site / "templates")

    with pytest.raises(FileNotFoundError):
        fs.read_file(path)


def test_directory_walk(site):
    fs = DirectoryFilesystem(site)

    assert list(fs.walk("templates")) == [
        ("templates/about", True),
        ("templates/home.html", False),
        ("templates/about/team.html", False),
    ]


def test_directory_walk_missing_root(site):
    assert list(DirectoryFilesystem(site).walk("nope")) == []


def test_registry_over_directory(site):
    reg = new_registry(DirectoryFilesystem(site))

    assert reg.discover() == ["about/team", "home"]
    out = reg.get("home").render_to_string(RenderContext.background(), {"title": "Hi"})
    assert out == "<h1>Hi</h1>"
