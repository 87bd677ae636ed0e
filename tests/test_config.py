import pytest

from repoinit.config import DEFAULT_TARGET_FILES, load_config
from repoinit.errors import ConfigurationError


def test_missing_default_config_uses_defaults(tmp_path):
    config = load_config(str(tmp_path / "repoinit.yaml"))
    assert config["target_files"] == DEFAULT_TARGET_FILES
    assert config["license"]["output"] == "LICENSE"
    assert config["github_config"]["pages_branch"] == "gh-pages"


def test_missing_explicit_config_is_an_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(str(tmp_path / "custom.yaml"), required=True)


def test_sections_merge_over_defaults(tmp_path):
    path = tmp_path / "repoinit.yaml"
    path.write_text(
        """
placeholders:
  COPYRIGHT_HOLDER: Acme Inc
  YEAR: 2025
target_files:
  - README.md
license:
  output: LICENSE.txt
github_config:
  pages_branch: docs-site
parameter_store_map:
""",
        encoding="utf-8",
    )
    config = load_config(str(path))
    assert config["placeholders"] == {"COPYRIGHT_HOLDER": "Acme Inc", "YEAR": "2025"}
    assert config["target_files"] == ["README.md"]
    assert config["license"] == {"templates_dir": ".github/license-templates", "output": "LICENSE.txt"}
    assert config["github_config"]["pages_branch"] == "docs-site"
    assert config["github_config"]["pages_path"] == "/"
    assert config["parameter_store_map"] == {}


@pytest.mark.parametrize(
    "body",
    [
        "placeholders: [a, b]\n",
        "target_files: README.md\n",
        "github_config:\n  labels:\n    - color: ffffff\n",
        "- just\n- a list\n",
        "placeholders: {KEY: [1, 2]}\n",
        "placeholders: {project_name: widget}\n",
        "parameter_store_map: {Project-Name: /acme/name}\n",
    ],
)
def test_malformed_sections_are_rejected(tmp_path, body):
    path = tmp_path / "repoinit.yaml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_invalid_yaml_is_reported(tmp_path):
    path = tmp_path / "repoinit.yaml"
    path.write_text("placeholders: {unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Error parsing YAML"):
        load_config(str(path))


def test_defaults_are_not_shared_between_loads(tmp_path):
    first = load_config(str(tmp_path / "none.yaml"))
    first["github_config"]["labels"].append({"name": "extra"})
    second = load_config(str(tmp_path / "none.yaml"))
    assert {"name": "extra"} not in second["github_config"]["labels"]
