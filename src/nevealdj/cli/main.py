#!/usr/bin/env python3
"""
Main CLI entry point for the NevealDJ engine
"""

import sys
from typing import List, Optional
from .args_parser import ArgumentParser
from .server import EngineServer
from ..core.analysis import AnalysisEngine
from ..core.engine import DjEngine
from ..core.errors import EngineError
from ..core.metadata import TrackMetadataService, require_file
from ..core.models import TrackMetadata
from ..utils.logging_utils import setup_logging


def format_metadata(metadata: TrackMetadata) -> str:
    lines = [
        f"Title:    {metadata.title}",
        f"Artist:   {metadata.artist or '-'}",
        f"BPM:      {'-' if metadata.bpm is None else f'{metadata.bpm:.2f}'}",
        f"Duration: {'-' if metadata.duration_seconds is None else f'{metadata.duration_seconds:.1f}s'}",
    ]
    if metadata.hot_cues:
        lines.append("Hot cues:")
        for i, cue in enumerate(metadata.hot_cues, 1):
            label = f" {cue.label}" if cue.label else ""
            lines.append(f"  [{i}] {cue.position_seconds:.3f}s{label}")
    return "\n".join(lines)


class NevealDJCLI:
    """Main CLI application class"""

    def __init__(self):
        self.arguments = ArgumentParser()
        self.analyzer = AnalysisEngine()

    def run(self, args: Optional[List[str]] = None) -> int:
        try:
            parsed = self.arguments.parse_args(args)
        except ValueError as e:
            print(f"❌ Error: {e}", file=sys.stderr)
            return 1

        setup_logging(parsed.log_level)

        try:
            if parsed.command == 'analyze':
                return self._analyze(parsed.files)
            if parsed.command == 'metadata':
                return self._show_metadata(parsed.file)
            if parsed.command == 'tag':
                return self._tag(parsed)
            if parsed.command == 'serve':
                return self._serve(parsed)
        except (EngineError, ValueError) as e:
            print(f"❌ Error: {e}", file=sys.stderr)
            return 1
        return 1

    def _analyze(self, files: List[str]) -> int:
        """Analyze every file; failures are reported and make the exit code 1"""
        failures = 0
        for i, file_path in enumerate(files, 1):
            try:
                result = self.analyzer.analyze_track(require_file(file_path))
            except EngineError as e:
                failures += 1
                print(f"  [{i}/{len(files)}] ❌ {file_path}: {e}")
                continue
            bpm_text = "no confident tempo" if result.bpm is None else f"{result.bpm:.2f} BPM"
            print(f"  [{i}/{len(files)}] {file_path}: {bpm_text} "
                  f"({result.analyzed_seconds:.1f}s analyzed)")
        return 1 if failures else 0

    def _show_metadata(self, file_path: str) -> int:
        service = TrackMetadataService(self.analyzer)
        print(format_metadata(service.get_track_metadata(file_path)))
        return 0

    def _tag(self, parsed) -> int:
        service = TrackMetadataService(self.analyzer)
        update = self.arguments.create_update(parsed)
        metadata = service.update_track_metadata(parsed.file, update)
        print(format_metadata(metadata))
        print("✅ Tags updated")
        return 0

    def _serve(self, parsed) -> int:
        config = self.arguments.create_configuration(parsed)
        with DjEngine(config, analyzer=self.analyzer) as engine:
            EngineServer(engine).serve_forever()
        return 0


def main():
    """Main entry point for CLI"""
    cli = NevealDJCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
