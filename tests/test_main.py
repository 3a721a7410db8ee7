import pytest

import main
from midi import MidiPorts


class PortsOnlyMidi:
    def __init__(self, device_prefix="MicroFreak", *, backend=None, input_enabled=True):
        self.device_prefix = device_prefix

    def list_ports(self):
        return MidiPorts(inputs=["MicroFreak in"], outputs=["MicroFreak out"])

    def connect(self, callback=None):
        raise RuntimeError("no ports here")

    def close(self):
        pass


@pytest.fixture
def cli(monkeypatch, tmp_path):
    monkeypatch.setattr(main, "configure_logging", lambda **_kw: None)
    monkeypatch.setattr(main, "SynthMidi", PortsOnlyMidi)
    return ["--config", str(tmp_path / "synthlink.json")]


def test_slots_are_one_based():
    args = main.build_parser().parse_args(["dump", "1"])
    assert args.slot == 0
    args = main.build_parser().parse_args(["sequence", "256"])
    assert args.slot == 255


@pytest.mark.parametrize("slot", ["0", "257", "x"])
def test_bad_slot_is_a_usage_error(slot):
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["dump", slot])


def test_scan_defaults_cover_every_slot():
    args = main.build_parser().parse_args(["scan"])
    assert (args.first, args.last) == (0, 255)


def test_ports(cli, caplog):
    caplog.set_level("INFO")
    assert main.main([*cli, "ports"]) == 0
    assert "MicroFreak out" in caplog.text


def test_unreachable_device(cli):
    assert main.main([*cli, "dump", "1"]) == 1


def test_se02_slot_and_channel_are_one_based():
    args = main.build_parser().parse_args(["se02-dump", "--slot", "1", "--channel", "10"])
    assert (args.slot, args.channel) == (0, 9)
    args = main.build_parser().parse_args(["se02-dump"])
    assert (args.slot, args.channel) == (None, 0)


@pytest.mark.parametrize("option", [["--slot", "129"], ["--slot", "0"], ["--channel", "17"]])
def test_se02_bad_option_is_a_usage_error(option):
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["se02-dump", *option])


class ConnectableMidi(PortsOnlyMidi):
    def connect(self, callback=None):
        return "SE-02 out"


def test_se02_dump_loads_the_requested_program(cli, monkeypatch):
    calls = []

    def fake_dump(orchestrator, **kwargs):
        calls.append(kwargs)
        return b"\x01\x02"

    monkeypatch.setattr(main, "SynthMidi", ConnectableMidi)
    monkeypatch.setattr(main, "dump_se02_edit_buffer", fake_dump)

    assert main.main([*cli, "se02-dump", "--slot", "5"]) == 0
    assert calls == [{"device_id": 0x10, "program": 4, "channel": 0}]
