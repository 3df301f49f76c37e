"""Nova configuration tests."""

import json

import pytest

from nova.config import CompilerOptions, find_config, load_config, options_from_dict
from nova.errors import ConfigError


class TestDefaults:

    def test_defaults(self):
        options = CompilerOptions()
        assert options.module_name == "nova"
        assert options.strict is True
        assert options.legacy_wide_loads is False
        assert options.opt_level == 2

    def test_no_config_file(self, tmp_path):
        assert load_config(start_dir=str(tmp_path)) == CompilerOptions()


class TestLoading:

    def test_load_explicit_path(self, tmp_path):
        path = tmp_path / ".novarc.json"
        path.write_text(json.dumps({"module_name": "app", "strict": False, "opt_level": 0}))
        options = load_config(str(path))
        assert options.module_name == "app"
        assert options.strict is False
        assert options.opt_level == 0

    def test_found_walking_up(self, tmp_path):
        (tmp_path / "nova.config.json").write_text(json.dumps({"legacy_wide_loads": True}))
        nested = tmp_path / "src" / "deep"
        nested.mkdir(parents=True)
        assert find_config(str(nested)) == str(tmp_path / "nova.config.json")
        assert load_config(start_dir=str(nested)).legacy_wide_loads is True

    def test_novarc_takes_priority(self, tmp_path):
        (tmp_path / ".novarc.json").write_text("{}")
        (tmp_path / "nova.config.json").write_text("{}")
        assert find_config(str(tmp_path)) == str(tmp_path / ".novarc.json")

    def test_unknown_keys_ignored(self):
        assert options_from_dict({"color": "blue"}) == CompilerOptions()


class TestInvalid:

    def test_invalid_json(self, tmp_path):
        path = tmp_path / ".novarc.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "absent.json"))

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / ".novarc.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            load_config(str(path))

    @pytest.mark.parametrize("data", [
        {"opt_level": 4},
        {"opt_level": "2"},
        {"opt_level": True},
        {"strict": "yes"},
        {"module_name": ""},
    ])
    def test_bad_values(self, data):
        with pytest.raises(ConfigError):
            options_from_dict(data)

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)
