import copy
import errno

import pytest

from distropkg.config import Configuration, parse_bool


class TestConfiguration:
    @pytest.fixture()
    def config_defaults(self):
        return Configuration.DEFAULTS

    @pytest.fixture()
    def expected_config(self):
        data = copy.deepcopy(Configuration.DEFAULTS)

        data["options"]["log_level"] = "DEBUG"
        data["options"]["no_update_repos"] = True
        data["options"]["yum"] = "dnf"
        data["proxy"]["http_proxy"] = "http://proxy:3128"

        return data

    @pytest.fixture()
    def toml_config_file(self, tmp_path):
        toml_content = """
        [options]
        log_level = "DEBUG"
        no_update_repos = true
        yum = "dnf"

        [proxy]
        http_proxy = "http://proxy:3128"
        """

        config_file = tmp_path / "config.toml"
        config_file.write_text(toml_content)
        return config_file

    @pytest.fixture()
    def yaml_config_file(self, tmp_path):
        yaml_content = """
        options:
          log_level: DEBUG
          no_update_repos: true
          yum: dnf
        proxy:
          http_proxy: "http://proxy:3128"
        """

        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml_content)
        return config_file

    @pytest.fixture()
    def json_config_file(self, tmp_path):
        json_content = """
        {
            "options": {
                "log_level": "DEBUG",
                "no_update_repos": true,
                "yum": "dnf"
            },
            "proxy": {
                "http_proxy": "http://proxy:3128"
            }
        }
        """
        config_file = tmp_path / "config.json"
        config_file.write_text(json_content)
        return config_file

    def test_initialization(self, config_defaults):
        """
        Ensure that the Configuration object initializes with
        the default values.
        """
        config = Configuration()
        assert config == config_defaults

    def test_instances_do_not_share_sections(self):
        """
        Changing one configuration must not leak into others,
        or into the defaults.
        """
        first = Configuration()
        first["options"]["offline"] = True

        assert Configuration()["options"]["offline"] is False
        assert Configuration.DEFAULTS["options"]["offline"] is False

    @pytest.mark.parametrize(
        "loader, fixture_name",
        [
            ("from_toml", "toml_config_file"),
            ("from_yaml", "yaml_config_file"),
            ("from_json", "json_config_file"),
        ],
        ids=["toml", "yaml", "json"],
    )
    def test_from_file(self, request, loader, fixture_name, expected_config):
        """
        Ensure that the configuration can be loaded from all formats.
        """
        config_file = request.getfixturevalue(fixture_name)
        config = Configuration()

        assert getattr(config, loader)(str(config_file)) is True
        assert config == expected_config

    def test_from_file_empty_yaml(self, tmp_path, config_defaults):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        config = Configuration()

        assert config.from_yaml(str(config_file)) is True
        assert config == config_defaults

    def test_from_file_missing_silent(self, tmp_path):
        config = Configuration()

        assert config.from_toml(str(tmp_path / "nope.toml"), silent=True) is False

    def test_from_file_missing(self, tmp_path):
        config = Configuration()

        with pytest.raises(IOError) as exc:
            config.from_toml(str(tmp_path / "nope.toml"))

        assert exc.value.errno == errno.ENOENT
        assert "Unable to load config file" in exc.value.strerror

    def test_update_from_mapping_unknown_key(self, caplog, config_defaults):
        config = Configuration()

        config.update_from_mapping({"hosts": [], "options": {"sudo": False}})

        assert "hosts" not in config
        assert config["options"]["sudo"] is False
        assert config["options"]["log_level"] == "INFO"
        assert "not a valid root key" in caplog.text

    def test_update_from_mapping_too_many_args(self):
        with pytest.raises(TypeError):
            Configuration().update_from_mapping({}, {})

    def test_from_env(self):
        config = Configuration()
        environ = {
            "OFFLINE": "True",
            "NO_UPDATE_REPOS": "false",
            "RETRY_UPDATE": "1",
            "YUM": "dnf",
            "http_proxy": "http://proxy:3128",
            "HTTPS_PROXY": "http://secure:3128",
            "no_proxy": "localhost",
            "NO_PROXY": "ignored",
        }

        assert config.from_env(environ) is True

        assert config["options"]["offline"] is True
        assert config["options"]["no_update_repos"] is False
        assert config["options"]["retry_update"] is True
        assert config["options"]["yum"] == "dnf"
        assert config["proxy"] == {
            "http_proxy": "http://proxy:3128",
            "https_proxy": "http://secure:3128",
            "no_proxy": "localhost",
        }

    def test_from_env_empty(self, config_defaults):
        """
        Values not present in the environment are left alone.
        """
        config = Configuration()
        config["options"]["yum"] = "yum"

        assert config.from_env({"PATH": "/usr/bin"}) is False
        assert config["options"]["yum"] == "yum"

    def test_from_env_os_environ(self, monkeypatch):
        monkeypatch.setenv("OFFLINE", "yes")
        config = Configuration()

        config.from_env()

        assert config["options"]["offline"] is True

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("True", True),
            ("true", True),
            ("1", True),
            (" yes ", True),
            ("on", True),
            ("False", False),
            ("0", False),
            ("", False),
            ("nope", False),
            (None, False),
            (True, True),
        ],
    )
    def test_parse_bool(self, value, expected):
        assert parse_bool(value) is expected
