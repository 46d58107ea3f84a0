from pathlib import Path

import pytest

from adguard_controller import cli
from adguard_controller.core import Command


def test_show_config_masks_passwords(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("ADGUARD_PASSWORD", "topsecret")
    monkeypatch.setenv("MQTT_PASSWORD", "hunter2")

    exit_code = cli.main(["-c", str(tmp_path / "missing.cfg"), "show-config"])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "[adguard]" in output
    assert "topsecret" not in output
    assert "hunter2" not in output
    assert "password = ********" in output


@pytest.mark.parametrize(
    ("argument", "succeeded", "expected_exit"),
    [("enable", True, 0), ("disable", False, 1)],
)
def test_one_shot_commands(tmp_path: Path, monkeypatch, argument, succeeded, expected_exit):
    seen = []

    async def fake_dispatch_once(config, command):
        seen.append(command)
        return succeeded

    monkeypatch.setattr(cli, "dispatch_once", fake_dispatch_once)
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)

    exit_code = cli.main(["-c", str(tmp_path / "missing.cfg"), argument])

    assert exit_code == expected_exit
    assert seen == [Command(argument)]


def test_start_runs_application(tmp_path: Path, monkeypatch) -> None:
    started = []
    monkeypatch.setattr(
        cli.ControllerApp,
        "start",
        classmethod(lambda cls, config: started.append(config)),
    )

    exit_code = cli.main(["-c", str(tmp_path / "missing.cfg"), "start"])

    assert exit_code == 0
    assert len(started) == 1
