#!/usr/bin/env python3
"""
Command-line argument parser
Subcommands for analysis, tag editing and the host server
"""

import argparse
import math
from typing import List, Optional
from ..core.config import DeckConstants, EngineConfiguration, PlaybackSettings
from ..core.models import HotCue, TrackMetadataUpdate

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


def parse_hot_cue(text: str) -> HotCue:
    """Parse SECONDS[:LABEL] into a hot cue"""
    position_text, _, label = text.partition(':')
    try:
        position = float(position_text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid hot cue position: {position_text!r}")
    if not math.isfinite(position) or position < 0:
        raise argparse.ArgumentTypeError("Hot cue position must be a non-negative number")
    return HotCue(position_seconds=position, label=label or None)


def parse_device(text: str):
    """Output devices are addressed by index or by name"""
    return int(text) if text.isdigit() else text


class ArgumentParser:
    """Argument parser with validation and configuration building"""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog='nevealdj',
            description='NevealDJ audio engine: BPM analysis, track tags and deck playback',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )
        parser.add_argument('--log-level', choices=LOG_LEVELS, default='INFO',
                            help='Logging verbosity on stderr (default: INFO)')

        subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
        subparsers.required = True

        analyze = subparsers.add_parser('analyze', help='Estimate the BPM of audio files')
        analyze.add_argument('files', nargs='+', help='Audio files to analyze')

        metadata = subparsers.add_parser('metadata',
                                         help='Show track metadata, refreshing a stale BPM tag')
        metadata.add_argument('file', help='Audio file')

        tag = subparsers.add_parser('tag', help='Edit track tags')
        tag.add_argument('file', help='Audio file')
        fields_group = tag.add_argument_group('Tag Fields')
        fields_group.add_argument('--title', help='Track title (empty string removes it)')
        fields_group.add_argument('--artist', help='Track artist (empty string removes it)')
        fields_group.add_argument('--bpm', type=float,
                                  help='BPM to store; 0 or less removes the BPM fields')
        cue_group = tag.add_argument_group('Hot Cues')
        cue_group.add_argument('--hot-cue', dest='hot_cues', action='append', type=parse_hot_cue,
                               metavar='SECONDS[:LABEL]',
                               help='Hot cue to store (repeatable; replaces the stored list)')
        cue_group.add_argument('--clear-hot-cues', action='store_true',
                               help='Remove every stored hot cue')

        serve = subparsers.add_parser('serve', help='Run the JSON-lines engine server on stdin/stdout')
        engine_group = serve.add_argument_group('Engine Settings')
        engine_group.add_argument('--decks', type=int, default=DeckConstants.DEFAULT_DECK_COUNT,
                                  help=f'Number of decks (default: {DeckConstants.DEFAULT_DECK_COUNT})')
        engine_group.add_argument('--no-analyze-on-load', action='store_true',
                                  help='Skip the BPM refresh when a track is loaded')
        output_group = serve.add_argument_group('Audio Output')
        output_group.add_argument('--device', type=parse_device,
                                  help='Output device index or name (default: system default)')
        output_group.add_argument('--blocksize', type=int, default=1024,
                                  help='Frames per output callback (default: 1024)')

        return parser

    def _get_examples_text(self) -> str:
        return """
Examples:
  # Estimate tempo
  nevealdj analyze track1.wav track2.flac

  # Show tags (the BPM is re-analyzed when the file changed since it was stored)
  nevealdj metadata track1.mp3

  # Edit tags
  nevealdj tag track1.mp3 --title "Intro" --bpm 128 --hot-cue 12.5:drop --hot-cue 64

  # Run the engine for a host process
  nevealdj serve --decks 4 --device 2
        """

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        parsed = self.parser.parse_args(args)
        self._validate_args(parsed)
        return parsed

    def _validate_args(self, args: argparse.Namespace):
        if args.command == 'tag':
            if args.hot_cues and args.clear_hot_cues:
                raise ValueError("--hot-cue and --clear-hot-cues cannot be combined")
            if args.bpm is not None and not math.isfinite(args.bpm):
                raise ValueError("BPM must be a finite number")
            if (args.title is None and args.artist is None and args.bpm is None
                    and not args.hot_cues and not args.clear_hot_cues):
                raise ValueError("Nothing to update: pass at least one tag option")

        if args.command == 'serve':
            if not 1 <= args.decks <= DeckConstants.MAX_DECK_COUNT:
                raise ValueError(f"Deck count must be between 1 and {DeckConstants.MAX_DECK_COUNT}")

    def create_update(self, args: argparse.Namespace) -> TrackMetadataUpdate:
        """Build a metadata update from the tag subcommand"""
        hot_cues = None
        if args.clear_hot_cues:
            hot_cues = []
        elif args.hot_cues:
            hot_cues = list(args.hot_cues)

        return TrackMetadataUpdate(
            title=args.title,
            artist=args.artist,
            bpm=args.bpm,
            hot_cues=hot_cues,
        )

    def create_configuration(self, args: argparse.Namespace) -> EngineConfiguration:
        """Build the engine configuration from the serve subcommand"""
        config = EngineConfiguration(
            deck_count=args.decks,
            analyze_on_load=not args.no_analyze_on_load,
            playback=PlaybackSettings(device=args.device, blocksize=args.blocksize),
            log_level=args.log_level,
        )
        config.validate()
        return config
