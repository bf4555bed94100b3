import pytest

from tokenvest.core.config import (
    CLIConfig,
    ConfigurationError,
    load_config_file,
    resolve_config,
)


def test_missing_file_yields_empty_mapping(tmp_path):
    assert load_config_file(tmp_path / "absent.yaml") == {}


def test_non_mapping_file_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError):
        load_config_file(path)


def test_invalid_yaml_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("key: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_config_file(path)


def test_file_values_and_overrides_layer(tmp_path, caplog):
    path = tmp_path / "config.yaml"
    path.write_text(
        "network: MAINNET\n"
        "log_level: debug\n"
        "state_file: /from/file.json\n"
        "token_decimals: 6\n"
        "unexpected: 1\n"
    )

    config = resolve_config(path, overrides={"state_file": "/from/cli.json", "log_level": None})

    assert config.network == "mainnet"
    assert config.log_level == "DEBUG"
    assert config.state_file == "/from/cli.json"
    assert config.token_decimals == 6
    assert any("unexpected" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize(
    "kwargs",
    [{"network": "moonnet"}, {"log_level": "chatty"}, {"token_decimals": 19}],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        CLIConfig(**kwargs)
