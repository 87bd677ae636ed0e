import pytest

from repoinit.errors import ConfigurationError
from repoinit.pages import PagesInstaller


class _FakeClient:
    def __init__(self, branches=(), pages=None):
        self.branches = set(branches)
        self.pages = pages
        self.mutations = []

    def branch_exists(self, branch):
        return branch in self.branches

    def create_orphan_branch(self, branch, files, message):
        self.mutations.append(("branch", branch, dict(files)))
        self.branches.add(branch)
        return "abc123"

    def get_pages(self):
        return self.pages

    def create_pages(self, branch, path="/"):
        self.mutations.append(("create_pages", branch, path))
        self.pages = {"html_url": "https://acme.github.io/widget/", "source": {"branch": branch, "path": path}}
        return self.pages

    def update_pages(self, branch, path="/"):
        self.mutations.append(("update_pages", branch, path))
        return {}


def test_first_run_creates_branch_and_site(tmp_path):
    client = _FakeClient()
    result = PagesInstaller(client, str(tmp_path)).install()
    assert result.branch_created is True
    assert result.site_action == "created"
    assert result.html_url == "https://acme.github.io/widget/"
    assert client.mutations == [
        ("branch", "gh-pages", {".nojekyll": ""}),
        ("create_pages", "gh-pages", "/"),
    ]


def test_rerun_performs_no_mutating_call(tmp_path):
    client = _FakeClient(
        branches={"main", "gh-pages"},
        pages={"html_url": "https://acme.github.io/widget/", "source": {"branch": "gh-pages", "path": "/"}},
    )
    result = PagesInstaller(client, str(tmp_path)).install()
    assert result.branch_created is False
    assert result.site_action == "unchanged"
    assert client.mutations == []


def test_different_source_is_updated(tmp_path):
    client = _FakeClient(
        branches={"gh-pages"},
        pages={"html_url": "https://acme.github.io/widget/", "source": {"branch": "main", "path": "/docs"}},
    )
    result = PagesInstaller(client, str(tmp_path)).install()
    assert result.site_action == "updated"
    assert client.mutations == [("update_pages", "gh-pages", "/")]


def test_docs_path_puts_nojekyll_under_docs(tmp_path):
    client = _FakeClient(pages={"source": {"branch": "gh-pages", "path": "/docs"}})
    PagesInstaller(client, str(tmp_path), path="/docs").install()
    assert client.mutations[0] == ("branch", "gh-pages", {"docs/.nojekyll": ""})


def test_invalid_path_is_rejected(tmp_path):
    with pytest.raises(ConfigurationError):
        PagesInstaller(_FakeClient(), str(tmp_path), path="/site")


def test_site_url_updated_preserving_comments(tmp_path):
    mkdocs = tmp_path / "mkdocs.yml"
    mkdocs.write_text(
        "# Project documentation\n"
        "site_name: widget\n"
        "site_url: https://example.invalid/\n"
        "nav:\n"
        "  - Home: index.md  # landing page\n",
        encoding="utf-8",
    )
    client = _FakeClient(branches={"gh-pages"}, pages={"source": {"branch": "gh-pages", "path": "/"}})
    installer = PagesInstaller(client, str(tmp_path))

    result = installer.install(site_url="https://acme.github.io/widget/")

    text = mkdocs.read_text(encoding="utf-8")
    assert result.docs_config_updated is True
    assert "site_url: https://acme.github.io/widget/" in text
    assert "# Project documentation" in text
    assert "# landing page" in text
    assert installer.update_docs_config("https://acme.github.io/widget/") is False


def test_missing_docs_config_is_skipped(tmp_path):
    client = _FakeClient(branches={"gh-pages"}, pages={"source": {"branch": "gh-pages", "path": "/"}})
    result = PagesInstaller(client, str(tmp_path)).install(site_url="https://acme.github.io/widget/")
    assert result.docs_config_updated is False
