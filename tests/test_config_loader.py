import pytest
import yaml

from geosample.config_loader import CONFIG_ENV_VAR, Config, load_config
from geosample.models import OptimizationConfig, SamplingMethod


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run from an empty directory with no config environment variable."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    return tmp_path


def write_config(path, data):
    path.write_text(yaml.safe_dump(data))
    return path


def test_defaults_without_config_file(isolated_cwd):
    config = Config()

    assert config.config_path is None
    assert config.get("parsing.max_points") == 50000
    assert config.get_parsing_setting("batch_size") == 10000
    assert config.get_optimization_setting("sampling_method") == "uniform"
    assert config.get("logging.level") == "INFO"
    assert config.get("missing.key", "fallback") == "fallback"


def test_file_values_override_defaults(isolated_cwd):
    path = write_config(
        isolated_cwd / "custom.yaml",
        {"parsing": {"batch_size": 500}, "optimization": {"sampling_method": "grid"}},
    )

    config = load_config(path)

    assert config.get_parsing_setting("batch_size") == 500
    assert config.get_parsing_setting("max_points") == 50000
    assert OptimizationConfig.from_config(config).sampling_method is SamplingMethod.GRID


def test_config_found_in_working_directory(isolated_cwd):
    write_config(isolated_cwd / "geosample.yaml", {"logging": {"level": "DEBUG"}})

    assert Config().get("logging.level") == "DEBUG"


def test_config_from_environment_variable(isolated_cwd, monkeypatch):
    path = write_config(isolated_cwd / "env.yaml", {"optimization": {"cluster_radius": 2.0}})
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    config = Config()

    assert config.config_path == path.resolve()
    assert config.get_optimization_setting("cluster_radius") == 2.0


def test_explicit_missing_file_raises(isolated_cwd):
    with pytest.raises(FileNotFoundError):
        Config(isolated_cwd / "absent.yaml")


def test_empty_file_uses_defaults(isolated_cwd):
    path = isolated_cwd / "empty.yaml"
    path.write_text("")

    assert Config(path).get("optimization.max_points") == 50000


def test_optimization_config_from_defaults(isolated_cwd):
    assert OptimizationConfig.from_config(Config()) == OptimizationConfig()


def test_print_config_summary_runs(isolated_cwd):
    Config().print_config_summary()
