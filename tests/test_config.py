from pathlib import Path

from adguard_controller.config import load_config, placeholder_settings


def test_load_config_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "adguard-controller.cfg", environ={})

    assert config.adguard.base_url == "default ip"
    assert config.adguard.timeout_seconds == 30.0
    assert config.adguard.service_id == "youtube"
    assert config.broker.port == 8883
    assert config.broker.tls is True
    assert config.broker.username is None
    assert config.http.port == 3000
    assert config.resilience.reconnect_delay_seconds == 5.0
    assert config.resilience.reconnect_forever is True
    assert config.resilience.queue_capacity == 10
    assert config.resilience.strict_status is False
    assert config.logging.path is None
    assert placeholder_settings(config) == [
        "adguard.base_url",
        "adguard.username",
        "adguard.password",
    ]


def test_environment_overrides(tmp_path: Path) -> None:
    environ = {
        "ADGUARD_URL": "http://192.168.1.10:3000/",
        "ADGUARD_USERNAME": "admin",
        "ADGUARD_PASSWORD": "secret",
        "ADGUARD_TIMEOUT": "12",
        "MQTT_HOST": "broker.example.net",
        "MQTT_PORT": "8884",
        "MQTT_USERNAME": "controller",
        "MQTT_PASSWORD": "hunter2",
        "MQTT_TOPIC": "home/adguard",
        "PORT": "8080",
        "LOG_LEVEL": "DEBUG",
    }

    config = load_config(tmp_path / "missing.cfg", environ=environ)

    assert config.adguard.base_url == "http://192.168.1.10:3000"
    assert config.adguard.username == "admin"
    assert config.adguard.timeout_seconds == 12.0
    assert config.broker.host == "broker.example.net"
    assert config.broker.port == 8884
    assert config.broker.username == "controller"
    assert config.broker.password == "hunter2"
    assert config.broker.topic == "home/adguard"
    assert config.http.port == 8080
    assert config.logging.level == "DEBUG"
    assert placeholder_settings(config) == []


def test_unparseable_numbers_fall_back_to_defaults(tmp_path: Path) -> None:
    environ = {"ADGUARD_TIMEOUT": "soon", "PORT": "http", "MQTT_PORT": ""}

    config = load_config(tmp_path / "missing.cfg", environ=environ)

    assert config.adguard.timeout_seconds == 30.0
    assert config.http.port == 3000
    assert config.broker.port == 8883


def test_file_values_sit_below_environment(tmp_path: Path) -> None:
    config_path = tmp_path / "adguard-controller.cfg"
    config_path.write_text(
        """
[adguard]
base_url = http://adguard.lan
service_id = tiktok
service_name = TikTok

[mqtt]
tls = false
enabled = false

[resilience]
reconnect_delay_seconds = 2.5
reconnect_forever = false
reconnect_max_attempts = 4
queue_capacity = 3
strict_status = true
""".strip()
        + "\n",
        encoding="utf-8",
    )

    config = load_config(config_path, environ={"ADGUARD_URL": "http://10.0.0.2"})

    assert config.adguard.base_url == "http://10.0.0.2"
    assert config.adguard.service_id == "tiktok"
    assert config.adguard.service_name == "TikTok"
    assert config.broker.tls is False
    assert config.broker.enabled is False
    assert config.resilience.reconnect_delay_seconds == 2.5
    assert config.resilience.reconnect_forever is False
    assert config.resilience.reconnect_max_attempts == 4
    assert config.resilience.queue_capacity == 3
    assert config.resilience.strict_status is True
    assert config.raw.get("adguard", "base_url") == "http://10.0.0.2"


def test_percent_signs_are_taken_literally(tmp_path: Path) -> None:
    config_path = tmp_path / "adguard-controller.cfg"
    config_path.write_text("[mqtt]\npassword = 50%off\n", encoding="utf-8")
    environ = {
        "ADGUARD_PASSWORD": "p%ssw0rd",
        "ADGUARD_URL": "http://adguard.lan/%7Eadmin",
    }

    config = load_config(config_path, environ=environ)

    assert config.adguard.password == "p%ssw0rd"
    assert config.adguard.base_url == "http://adguard.lan/%7Eadmin"
    assert config.broker.password == "50%off"
