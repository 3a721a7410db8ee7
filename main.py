import argparse
import logging
import sys
from pathlib import Path

from midi import SynthMidi

from synthlink.app.config import ConfigManager
from synthlink.domain.preset_files import preset_to_json, write_mbp
from synthlink.domain.sequence import sequence_from_preset
from synthlink.errors import SynthlinkError
from synthlink.logging_setup import configure_logging
from synthlink.protocol.codes import MicroFreakLayout
from synthlink.transfer.orchestrator import TransferOrchestrator
from synthlink.transfer.scanner import PresetScanner
from synthlink.transfer.se02_dump import dump_se02_edit_buffer
from synthlink.transport.midi_transport import MidiTransport


def _slot_arg(value: str) -> int:
    """Slots are 1-based on the command line, like the synth's display."""
    slot = int(value)
    if not 1 <= slot <= MicroFreakLayout.SLOT_COUNT:
        raise argparse.ArgumentTypeError(f"slot must be 1..{MicroFreakLayout.SLOT_COUNT}")
    return slot - 1


def _program_arg(value: str) -> int:
    program = int(value)
    if not 1 <= program <= 128:
        raise argparse.ArgumentTypeError("program must be 1..128")
    return program - 1


def _channel_arg(value: str) -> int:
    channel = int(value)
    if not 1 <= channel <= 16:
        raise argparse.ArgumentTypeError("channel must be 1..16")
    return channel - 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Read presets and sequences from hardware synths over SysEx.")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Can also use SYNTHLINK_LOG_LEVEL env var.",
    )
    parser.add_argument("--config", default="synthlink.json", help="Path to the JSON config file.")
    parser.add_argument("--device-prefix", default=None, help="MIDI port name to match (overrides config).")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ports", help="List MIDI ports.")

    dump = sub.add_parser("dump", help="Read one MicroFreak preset.")
    dump.add_argument("slot", type=_slot_arg, help="Preset slot (1-256).")
    dump.add_argument(
        "--chunks",
        type=int,
        default=MicroFreakLayout.FULL_PRESET_CHUNKS,
        help=(
            f"Chunks to read: {MicroFreakLayout.METADATA_CHUNKS} for the patch only, "
            f"{MicroFreakLayout.FULL_PRESET_CHUNKS} to include the sequence."
        ),
    )
    dump.add_argument("--json", type=Path, default=None, help="Save the preset as JSON.")
    dump.add_argument("--mbp", type=Path, default=None, help="Save the preset as an .mbp file (needs 146 chunks).")

    scan = sub.add_parser("scan", help="Read names and categories of a slot range.")
    scan.add_argument("--first", type=_slot_arg, default=0, help="First slot (1-256).")
    scan.add_argument("--last", type=_slot_arg, default=MicroFreakLayout.SLOT_COUNT - 1, help="Last slot (1-256).")

    empty = sub.add_parser("empty-slots", help="List slots holding INIT or uncategorized presets.")
    empty.add_argument("--first", type=_slot_arg, default=0)
    empty.add_argument("--last", type=_slot_arg, default=MicroFreakLayout.SLOT_COUNT - 1)

    seq = sub.add_parser("sequence", help="Read and decode the sequence stored in a preset.")
    seq.add_argument("slot", type=_slot_arg, help="Preset slot (1-256).")

    se02 = sub.add_parser("se02-dump", help="Read the SE-02 edit buffer (5-pin DIN only).")
    se02.add_argument("--slot", type=_program_arg, default=None, help="Load this program (1-128) before reading.")
    se02.add_argument("--channel", type=_channel_arg, default=0, help="MIDI channel for the program change (1-16).")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    configure_logging(cli_level=args.log_level)
    logger = logging.getLogger("main")

    config = ConfigManager(args.config)
    prefix = args.device_prefix or config.device_prefix
    midi = SynthMidi(device_prefix=prefix, backend=config.config.midi.backend)

    if args.command == "ports":
        ports = midi.list_ports()
        logger.info("Available MIDI outputs:")
        for name in ports.outputs:
            logger.info("- %s", name)
        logger.info("Available MIDI inputs:")
        for name in ports.inputs:
            logger.info("- %s", name)
        return 0

    transport = MidiTransport(midi)
    if not transport.open():
        logger.error("Could not connect to a MIDI port matching %r", prefix)
        return 1

    orchestrator = TransferOrchestrator(transport, timings=config.timings)
    try:
        if args.command == "dump":
            preset = orchestrator.read_preset(args.slot, chunk_count=args.chunks)
            logger.info("Preset %d: %s", preset.slot + 1, preset.name)
            logger.info("- category: %s", preset.category_name)
            logger.info("- bank/preset: %d/%d", preset.bank, preset.preset_number)
            logger.info("- firmware (guessed): %d", preset.firmware)
            logger.info("- format supported (guessed): %s", preset.supported)
            if args.json is not None:
                args.json.write_text(preset_to_json(preset), encoding="utf-8")
                logger.info("Saved %s", args.json)
            if args.mbp is not None:
                write_mbp(preset.chunks, args.mbp)

        elif args.command in ("scan", "empty-slots"):
            scanner = PresetScanner(orchestrator)
            report = scanner.scan(range(args.first, args.last + 1))
            if args.command == "scan":
                for p in report.presets:
                    marker = " (empty)" if p.is_empty else ""
                    logger.info("%3d  %-12s %-10s%s", p.slot + 1, p.name, p.category_name, marker)
            else:
                logger.info("Empty slots: %s", ", ".join(str(s + 1) for s in report.empty_slots) or "none")
            for failure in report.failures:
                logger.warning("Slot %d not read: %s", failure.slot + 1, failure.reason.value)

        elif args.command == "sequence":
            preset = orchestrator.read_preset(args.slot, chunk_count=MicroFreakLayout.FULL_PRESET_CHUNKS)
            sequence = sequence_from_preset(preset)
            logger.info("Sequence of %r: %d steps (decoding is best effort)", preset.name, sequence.length)
            for i, step in enumerate(sequence.steps, start=1):
                logger.info(
                    "%2d gate=%s note=%s A=%s C=%s D=%s",
                    i,
                    "on " if step.gate else "off",
                    step.note,
                    step.lane_a,
                    step.lane_c,
                    step.lane_d,
                )

        elif args.command == "se02-dump":
            buffer = dump_se02_edit_buffer(
                orchestrator,
                device_id=config.config.midi.roland_device_id,
                program=args.slot,
                channel=args.channel,
            )
            logger.info("SE-02 edit buffer (%d bytes): %s", len(buffer), buffer.hex(" "))

    except SynthlinkError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        transport.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
