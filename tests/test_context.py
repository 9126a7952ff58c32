import pytest
from unittest.mock import MagicMock

from tool_agent.context import describe_dataframe, describe_source_file, gather_project_context, is_tabular


@pytest.fixture
def project(tmp_path):
    (tmp_path / "README.md").write_text("# Demo\nA small demo project.\n")
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "core.py").write_text("x = 1\n")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref")
    return tmp_path


def test_gather_levels(project):
    minimal = gather_project_context("minimal", str(project))
    standard = gather_project_context("standard", str(project))
    full = gather_project_context("comprehensive", str(project))

    assert minimal.startswith("## Project Context")
    assert "Files: 2" in minimal
    assert "### File types" not in minimal
    assert "A small demo project." in standard
    assert "### File tree" not in standard
    assert "- pkg/core.py" in full
    assert ".git" not in full


def test_gather_invalid_level(project):
    with pytest.raises(ValueError, match="Invalid context level"):
        gather_project_context("verbose", str(project))


def test_gather_missing_directory(tmp_path):
    with pytest.raises(NotADirectoryError):
        gather_project_context("minimal", str(tmp_path / "missing"))


def test_describe_source_file(tmp_path):
    source = tmp_path / "shapes.py"
    source.write_text(
        '"""Shapes."""\nimport math\n\n\nclass Circle:\n    def area(self, r=1):\n        return math.pi * r * r\n'
    )
    text = describe_source_file(source)
    assert text.startswith("## File: shapes.py")
    assert "Docstring: Shapes." in text
    assert "Imports: math" in text
    assert "- class Circle" in text
    assert "    - def area(self, r=1)" in text
    assert text.endswith(source.read_text())


def test_is_tabular():
    frame = MagicMock(columns=["a"], shape=(1, 1))
    assert is_tabular(frame)
    assert is_tabular([{"a": 1}])
    assert not is_tabular([])
    assert not is_tabular([1, 2])
    assert not is_tabular("text")


def test_describe_summary_falls_back_without_describe():
    text = describe_dataframe("rows", [{"a": 1}, {"a": 2}], method="summary")
    assert text.startswith("## Data: rows")
    assert "summary unavailable" in text


def test_describe_summary_uses_describe():
    frame = MagicMock(columns=["a"], shape=(3, 1), dtypes={"a": "int64"})
    frame.describe.return_value = "count 3"
    text = describe_dataframe("df", frame, method="summary")
    assert "- a: int64" in text
    assert text.endswith("### Summary\ncount 3")


def test_describe_invalid_method():
    with pytest.raises(ValueError, match="Invalid describe method"):
        describe_dataframe("rows", [{"a": 1}], method="deep")
