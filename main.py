import argparse
import logging
import sys
from typing import List, Optional

from chords import ChordManager
from RiserGenerator import RiserConfig, RiserEngine
from RiserManager import RiserPlayer

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def build_parser(chord_manager: ChordManager) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uprise",
        description="Render an endlessly rising chord (Shepard-style riser) to a WAV file.")
    parser.add_argument("--out", default="out.wav", help="output location")
    parser.add_argument("--gain", type=float, default=0.05, help="volume gain")
    parser.add_argument("--octavesHz", type=float, default=0.1,
                        help="octaves per second rise in pitch")
    parser.add_argument("--durationSec", type=float, default=60.0,
                        help="duration in seconds of generated wav")
    parser.add_argument("--chordName", default="maj",
                        help=f"chord to play ({', '.join(chord_manager.chord_names)})")
    parser.add_argument("--volumeCenterHz", type=float, default=1000.0,
                        help="center frequency for volume modulation")
    parser.add_argument("--volumeStdDevHz", type=float, default=800.0,
                        help="std dev frequency for volume modulation")
    parser.add_argument("--play", action="store_true", help="play the riser after saving it")
    parser.add_argument("-v", "--verbose", action="store_true", help="log status and progress")
    return parser


class App:
    """
    Command-line entry point: parses flags, resolves the chord and renders the riser.
    """
    def __init__(self) -> None:
        self.chord_manager = ChordManager()

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = build_parser(self.chord_manager).parse_args(argv)
        logging.basicConfig(
            level=logging.INFO if args.verbose else logging.WARNING,
            format=LOG_FORMAT,
            handlers=[logging.StreamHandler(sys.stdout)]
        )

        chord, found = self.chord_manager.lookup(args.chordName)
        if not found:
            logging.error(f"unknown chord: {args.chordName}")
            return 1
        try:
            config = RiserConfig(
                octaves_per_sec=args.octavesHz,
                duration=args.durationSec,
                volume_center_hz=args.volumeCenterHz,
                volume_stddev_hz=args.volumeStdDevHz,
                gain=args.gain,
            )
        except ValueError as e:
            logging.error(f"Invalid configuration: {e}")
            return 1

        player = RiserPlayer(RiserEngine(config, chord))
        samples = player.save_to_wav(
            args.out,
            update_status=logging.info,
            update_progress=lambda p: logging.info(f"Progress: {p:.0%}"))
        if samples is None:
            return 1
        if args.play and not player.play(samples, update_status=logging.info):
            return 1
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    return App().run(argv)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting...")
        sys.exit(130)
