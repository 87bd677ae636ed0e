import pytest

from repoinit.errors import PlaceholderError
from repoinit.placeholders import PlaceholderReplacer, find_placeholders, substitute


MAPPING = {
    "PROJECT_NAME": "widget",
    "REPOSITORY_URL": "https://github.com/acme/widget",
    "YEAR": "2026",
}


def _write(root, relative, text):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_find_placeholders_ignores_workflow_expressions():
    text = "# {{PROJECT_NAME}}\nref: ${{ github.ref }}\n{{ lower }} {{YEAR}}"
    assert find_placeholders(text) == {"PROJECT_NAME", "YEAR"}


def test_substitute_counts_and_reports_unknown_keys():
    text = "{{PROJECT_NAME}} at {{REPOSITORY_URL}} by {{COPYRIGHT_HOLDER}} ({{PROJECT_NAME}})"
    new_text, count, unresolved = substitute(text, MAPPING)
    assert new_text == "widget at https://github.com/acme/widget by {{COPYRIGHT_HOLDER}} (widget)"
    assert count == 3
    assert unresolved == {"COPYRIGHT_HOLDER"}


def test_substitute_does_not_expand_values():
    new_text, count, _ = substitute("{{A}}", {"A": "{{B}}", "B": "nope"})
    assert new_text == "{{B}}"
    assert count == 1


def test_apply_replaces_every_occurrence_in_target_files(tmp_path):
    _write(tmp_path, "README.md", "# {{PROJECT_NAME}}\n\nSee {{REPOSITORY_URL}}.\n{{PROJECT_NAME}}\n")
    _write(tmp_path, ".github/CODEOWNERS", "* @acme\n")
    _write(tmp_path, "docs/index.md", "Copyright {{YEAR}}\n")
    untouched = _write(tmp_path, "NOT_A_TARGET.md", "{{PROJECT_NAME}}\n")

    replacer = PlaceholderReplacer(str(tmp_path), ["README.md", ".github/CODEOWNERS", "docs/index.md", "CONTRIBUTING.md"])
    report = replacer.apply(MAPPING)

    readme = (tmp_path / "README.md").read_text(encoding="utf-8")
    assert "{{PROJECT_NAME}}" not in readme
    assert "{{REPOSITORY_URL}}" not in readme
    assert readme.count("widget") == 3
    assert (tmp_path / "docs/index.md").read_text(encoding="utf-8") == "Copyright 2026\n"
    assert untouched.read_text(encoding="utf-8") == "{{PROJECT_NAME}}\n"

    assert sorted(report.changed_files) == ["README.md", "docs/index.md"]
    assert report.total_replacements == 4
    assert report.missing_files == ["CONTRIBUTING.md"]
    assert report.unresolved == {}


def test_apply_dry_run_leaves_files_alone(tmp_path):
    readme = _write(tmp_path, "README.md", "# {{PROJECT_NAME}}\n")
    report = PlaceholderReplacer(str(tmp_path), ["README.md"]).apply(MAPPING, dry_run=True)
    assert report.changed_files == ["README.md"]
    assert readme.read_text(encoding="utf-8") == "# {{PROJECT_NAME}}\n"


def test_apply_is_idempotent(tmp_path):
    _write(tmp_path, "README.md", "# {{PROJECT_NAME}}\n")
    replacer = PlaceholderReplacer(str(tmp_path), ["README.md"])
    replacer.apply(MAPPING)
    second = replacer.apply(MAPPING)
    assert second.changed_files == []


def test_scan_lists_remaining_tokens(tmp_path):
    _write(tmp_path, "README.md", "# {{PROJECT_NAME}} {{UNKNOWN}}\n")
    _write(tmp_path, "CONTRIBUTING.md", "nothing here\n")
    replacer = PlaceholderReplacer(str(tmp_path), ["README.md", "CONTRIBUTING.md"])
    assert replacer.scan() == {"README.md": {"PROJECT_NAME", "UNKNOWN"}}


def test_target_outside_root_is_rejected(tmp_path):
    root = tmp_path / "repo"
    root.mkdir()
    _write(tmp_path, "outside.md", "{{PROJECT_NAME}}")
    with pytest.raises(PlaceholderError):
        PlaceholderReplacer(str(root), ["../outside.md"]).apply(MAPPING)


def test_scan_reports_undecodable_file(tmp_path):
    (tmp_path / "README.md").write_bytes(b"\xff\xfe{{PROJECT_NAME}}")
    with pytest.raises(PlaceholderError, match="README.md"):
        PlaceholderReplacer(str(tmp_path), ["README.md"]).scan()


def test_apply_writes_nothing_when_a_target_cannot_be_read(tmp_path):
    readme = _write(tmp_path, "README.md", "# {{PROJECT_NAME}}\n")
    (tmp_path / "CONTRIBUTING.md").write_bytes(b"\xff{{PROJECT_NAME}}")

    replacer = PlaceholderReplacer(str(tmp_path), ["README.md", "CONTRIBUTING.md"])
    with pytest.raises(PlaceholderError):
        replacer.apply(MAPPING)
    assert readme.read_text(encoding="utf-8") == "# {{PROJECT_NAME}}\n"
