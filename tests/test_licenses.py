import pytest

from repoinit.errors import GitHubError, LicenseError
from repoinit.licenses import LicenseInstaller, normalize_license_id

CONTEXT = {"YEAR": "2026", "COPYRIGHT_HOLDER": "Acme Inc", "LICENSE_TYPE": "MIT"}


def _templates(root):
    templates = root / ".github" / "license-templates"
    templates.mkdir(parents=True)
    (templates / "MIT.txt").write_text(
        "MIT License\n\nCopyright (c) {{YEAR}} {{COPYRIGHT_HOLDER}}\n\nPermission is hereby granted...\n",
        encoding="utf-8",
    )
    (templates / "Apache-2.0.txt").write_text(
        "Apache License\nVersion 2.0\n\nCopyright {{YEAR}} {{COPYRIGHT_HOLDER}}\n", encoding="utf-8"
    )
    (templates / "GPL-3.0.txt").write_text("GNU GENERAL PUBLIC LICENSE\nVersion 3\n", encoding="utf-8")
    return templates


class _FakeGitHub:
    def __init__(self, body=None, error=None):
        self.body = body
        self.error = error
        self.requested = []

    def get_license_text(self, key):
        self.requested.append(key)
        if self.error:
            raise self.error
        return self.body


@pytest.mark.parametrize(
    "value, expected",
    [("mit", "MIT"), ("MIT", "MIT"), (" Apache ", "Apache-2.0"), ("gpl-3.0", "GPL-3.0"), ("GPLv3", "GPL-3.0")],
)
def test_normalize_license_id(value, expected):
    assert normalize_license_id(value) == expected


def test_normalize_rejects_unknown_license():
    with pytest.raises(LicenseError):
        normalize_license_id("BSD-3-Clause")


def test_install_renders_selected_template_and_removes_the_rest(tmp_path):
    templates = _templates(tmp_path)
    (tmp_path / "LICENSE").write_text("{{LICENSE_TYPE}} placeholder\n", encoding="utf-8")

    output = LicenseInstaller(str(tmp_path)).install("apache", CONTEXT)

    text = output.read_text(encoding="utf-8")
    assert output == tmp_path / "LICENSE"
    assert text == "Apache License\nVersion 2.0\n\nCopyright 2026 Acme Inc\n"
    assert not templates.exists()


def test_install_uses_custom_output_path(tmp_path):
    _templates(tmp_path)
    output = LicenseInstaller(str(tmp_path), output="docs/LICENSE.md").install("MIT", CONTEXT)
    assert output == tmp_path / "docs" / "LICENSE.md"
    assert "Copyright (c) 2026 Acme Inc" in output.read_text(encoding="utf-8")


def test_undefined_template_variable_is_an_error(tmp_path):
    templates = _templates(tmp_path)
    (templates / "MIT.txt").write_text("Copyright {{YEAR}} {{AUTHOR_EMAIL}}\n", encoding="utf-8")
    with pytest.raises(LicenseError, match="Undefined variable"):
        LicenseInstaller(str(tmp_path)).install("MIT", CONTEXT)
    assert not (tmp_path / "LICENSE").exists()


def test_falls_back_to_github_license_text(tmp_path):
    github = _FakeGitHub(body="MIT License\n\nCopyright (c) [year] [fullname]\n")
    output = LicenseInstaller(str(tmp_path), github=github).install("MIT", CONTEXT)
    assert github.requested == ["mit"]
    assert output.read_text(encoding="utf-8") == "MIT License\n\nCopyright (c) 2026 Acme Inc\n"


def test_github_failure_is_a_license_error(tmp_path):
    github = _FakeGitHub(error=GitHubError("boom", status_code=500))
    with pytest.raises(LicenseError, match="Failed to fetch GPL-3.0"):
        LicenseInstaller(str(tmp_path), github=github).install("gpl", CONTEXT)


def test_no_template_source_is_an_error(tmp_path):
    with pytest.raises(LicenseError, match="No template for MIT"):
        LicenseInstaller(str(tmp_path)).install("MIT", CONTEXT)
