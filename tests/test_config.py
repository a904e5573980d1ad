import pytest

from adasa.config import LimitAction, ProcessConfig, expand_env_in_string
from adasa.errors import (
    ConfigError,
    ConfigValidationError,
    InvalidConfig,
    MissingConfigField,
)


def make_config(**overrides):
    settings = {"name": "test", "script": "/bin/echo"}
    settings.update(overrides)
    return ProcessConfig(**settings)


def test_process_config_defaults():
    config = make_config()
    assert config.instances == 1
    assert config.autorestart is True
    assert config.max_restarts == 10
    assert config.restart_delay_secs == 1
    assert config.stop_signal == "SIGTERM"
    assert config.stop_timeout_secs == 10
    assert config.limit_action is LimitAction.LOG
    assert config.args == []
    assert config.env == {}


def test_validate_valid_config():
    config = make_config()
    config.validate()
    assert config.name == "test"


def test_validate_empty_name():
    with pytest.raises(MissingConfigField) as info:
        make_config(name="").validate()
    assert "name" in str(info.value)


def test_validate_empty_script():
    with pytest.raises(MissingConfigField) as info:
        make_config(script="").validate()
    assert "script" in str(info.value)


def test_validate_zero_instances():
    with pytest.raises(ConfigValidationError, match="at least 1"):
        make_config(instances=0).validate()


def test_validate_too_many_instances():
    with pytest.raises(ConfigValidationError, match="cannot exceed 100"):
        make_config(instances=101).validate()


def test_validate_zero_max_restarts():
    with pytest.raises(ConfigValidationError, match="max_restarts"):
        make_config(max_restarts=0).validate()


def test_validate_invalid_signal():
    with pytest.raises(ConfigValidationError, match="Invalid stop_signal: INVALID"):
        make_config(stop_signal="INVALID").validate()


@pytest.mark.parametrize("cpu", [0, 101])
def test_validate_cpu_out_of_range(cpu):
    with pytest.raises(ConfigValidationError, match="max_cpu"):
        make_config(max_cpu=cpu).validate()


def test_validate_missing_cwd(tmp_path):
    with pytest.raises(ConfigValidationError, match="does not exist"):
        make_config(cwd=tmp_path / "missing").validate()


def test_validate_cwd_is_file(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")
    with pytest.raises(ConfigValidationError, match="not a directory"):
        make_config(cwd=target).validate()


def test_expand_env_vars(monkeypatch):
    monkeypatch.setenv("TEST_VAR", "test_value")
    monkeypatch.setenv("TEST_PATH", "/tmp")
    config = make_config(
        script="$TEST_PATH/script.sh",
        args=["--arg=${TEST_VAR}"],
        cwd="${TEST_PATH}",
        env={"KEY": "$TEST_VAR"},
    )
    config.expand_env_vars()
    assert config.script == "/tmp/script.sh"
    assert config.args[0] == "--arg=test_value"
    assert config.cwd == "/tmp"
    assert config.env["KEY"] == "test_value"


def test_expand_env_in_string_leaves_unknown(monkeypatch):
    monkeypatch.delenv("ADASA_UNSET_VARIABLE_Q", raising=False)
    monkeypatch.setenv("ADASA_KNOWN_Q", "v")
    assert expand_env_in_string("${ADASA_KNOWN_Q}/a") == "v/a"
    assert expand_env_in_string("$ADASA_UNSET_VARIABLE_Q") == "$ADASA_UNSET_VARIABLE_Q"


def test_parse_toml_single():
    contents = """
        name = "my-app"
        script = "/usr/bin/node"
        args = ["server.js"]
        instances = 2
        autorestart = true
    """
    configs = ProcessConfig.parse_toml(contents)
    assert len(configs) == 1
    assert configs[0].name == "my-app"
    assert configs[0].instances == 2
    assert configs[0].args == ["server.js"]


def test_parse_toml_multiple():
    contents = """
        [[processes]]
        name = "app1"
        script = "/usr/bin/node"
        args = ["server.js"]

        [[processes]]
        name = "app2"
        script = "/usr/bin/python"
        args = ["worker.py"]
    """
    configs = ProcessConfig.parse_toml(contents)
    assert [c.name for c in configs] == ["app1", "app2"]


def test_parse_toml_empty():
    with pytest.raises(InvalidConfig, match="No process configuration"):
        ProcessConfig.parse_toml("")


def test_parse_toml_syntax_error():
    with pytest.raises(InvalidConfig, match="Failed to parse TOML"):
        ProcessConfig.parse_toml("name = ")


def test_parse_toml_limit_action():
    configs = ProcessConfig.parse_toml(
        'name = "a"\nscript = "/bin/true"\nlimit_action = "restart"\n'
    )
    assert configs[0].limit_action is LimitAction.RESTART


def test_parse_json_single():
    contents = """
        {"name": "my-app", "script": "/usr/bin/node", "args": ["server.js"], "instances": 2}
    """
    configs = ProcessConfig.parse_json(contents)
    assert len(configs) == 1
    assert configs[0].name == "my-app"
    assert configs[0].instances == 2


def test_parse_json_multiple():
    contents = """
        {"processes": [
            {"name": "app1", "script": "/usr/bin/node", "args": ["server.js"]},
            {"name": "app2", "script": "/usr/bin/python", "args": ["worker.py"]}
        ]}
    """
    configs = ProcessConfig.parse_json(contents)
    assert [c.name for c in configs] == ["app1", "app2"]


def test_parse_json_empty_processes():
    with pytest.raises(InvalidConfig, match="No process configuration"):
        ProcessConfig.parse_json('{"processes": []}')


def test_parse_json_invalid():
    with pytest.raises(InvalidConfig, match="Failed to parse JSON"):
        ProcessConfig.parse_json("{not json")


def test_parse_json_null_cwd():
    configs = ProcessConfig.parse_json('{"name": "a", "script": "/bin/true", "cwd": null}')
    assert configs[0].cwd is None


def test_from_dict_missing_script():
    with pytest.raises(InvalidConfig, match="script"):
        ProcessConfig.from_dict({"name": "a"})


def test_from_dict_rejects_bool_instances():
    with pytest.raises(InvalidConfig, match="instances"):
        ProcessConfig.from_dict({"name": "a", "script": "/bin/true", "instances": True})


def test_from_dict_bad_limit_action():
    with pytest.raises(InvalidConfig, match="limit_action"):
        ProcessConfig.from_dict({"name": "a", "script": "/bin/true", "limit_action": "x"})


def test_from_file_toml(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('name = "test-app"\nscript = "/bin/echo"\nargs = ["hello"]\n')
    configs = ProcessConfig.from_file(path)
    assert len(configs) == 1
    assert configs[0].name == "test-app"


def test_from_file_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{"name": "test-app", "script": "/bin/echo", "args": ["hello"]}')
    configs = ProcessConfig.from_file(path)
    assert len(configs) == 1
    assert configs[0].name == "test-app"


def test_from_file_unsupported_format(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("name: test")
    with pytest.raises(InvalidConfig, match="Unsupported file format: yaml"):
        ProcessConfig.from_file(path)


def test_from_file_missing(tmp_path):
    with pytest.raises(ConfigError, match="Failed to read config file"):
        ProcessConfig.from_file(tmp_path / "absent.toml")


def test_from_file_validates(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{"name": "a", "script": "/bin/echo", "instances": 0}')
    with pytest.raises(ConfigValidationError):
        ProcessConfig.from_file(path)


def test_from_file_expands_env(tmp_path, monkeypatch):
    monkeypatch.setenv("ADASA_CFG_ARG_Q", "expanded")
    path = tmp_path / "config.toml"
    path.write_text('name = "a"\nscript = "/bin/echo"\nargs = ["${ADASA_CFG_ARG_Q}"]\n')
    configs = ProcessConfig.from_file(path)
    assert configs[0].args == ["expanded"]


def test_durations():
    config = make_config(restart_delay_secs=3, stop_timeout_secs=7)
    assert config.restart_delay() == 3.0
    assert config.stop_timeout() == 7.0