#!/usr/bin/env python3
"""
JSON-lines host server
One request per line on stdin, one response per line on stdout:

  {"id": 1, "method": "setPitch", "params": {"deckId": 1, "percent": 4.5}}
  {"id": 1, "result": {"id": 1, "pitchPercent": 4.5, ...}}
  {"id": 2, "error": {"type": "NotFoundError", "message": "Deck 9 not found"}}
"""

import json
import logging
import sys
from typing import Any, Callable, Dict, Optional, TextIO
from ..core.engine import DjEngine
from ..core.errors import EngineError, ValidationError
from ..core.models import TrackMetadataUpdate

logger = logging.getLogger(__name__)


def _param(params: Dict[str, Any], *names: str) -> Any:
    """First present parameter among the accepted spellings"""
    for name in names:
        if name in params:
            return params[name]
    raise ValidationError(f"Missing parameter: {names[0]}")


def _deck_id(params: Dict[str, Any]) -> int:
    value = _param(params, "deckId", "deck_id")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("deckId must be an integer")
    return value


def _path(params: Dict[str, Any]) -> str:
    value = _param(params, "path", "filePath")
    if not isinstance(value, str):
        raise ValidationError("path must be a string")
    return value


def _number(params: Dict[str, Any], *names: str) -> float:
    value = _param(params, *names)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{names[0]} must be a number")
    return float(value)


class EngineServer:
    """Dispatches JSON requests to a DjEngine"""

    def __init__(self, engine: DjEngine, input_stream: Optional[TextIO] = None,
                 output_stream: Optional[TextIO] = None):
        self.engine = engine
        self.input_stream = input_stream or sys.stdin
        self.output_stream = output_stream or sys.stdout
        self.methods: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "ping": lambda p: self.engine.ping(),
            "getState": lambda p: self.engine.get_state().to_dict(),
            "getDecks": lambda p: [deck.to_dict() for deck in self.engine.get_decks()],
            "getDeck": self._get_deck,
            "getMixer": lambda p: self.engine.get_mixer().to_dict(),
            "loadTrack": lambda p: self.engine.load_track(_deck_id(p), _path(p)).to_dict(),
            "togglePlayback": lambda p: self.engine.toggle_playback(_deck_id(p)).to_dict(),
            "setVolume": lambda p: self.engine.set_volume(_deck_id(p), _number(p, "volume")).to_dict(),
            "setPitch": lambda p: self.engine.set_pitch(
                _deck_id(p), _number(p, "percent", "pitchPercent")).to_dict(),
            "clearDeck": lambda p: self.engine.clear_deck(_deck_id(p)).to_dict(),
            "getTrackMetadata": lambda p: self.engine.get_track_metadata(_path(p)).to_dict(),
            "updateTrackMetadata": self._update_track_metadata,
            "analyzeTrack": lambda p: self.engine.analyze_track(_path(p)).to_dict(),
        }

    def _get_deck(self, params: Dict[str, Any]):
        deck = self.engine.get_deck(_deck_id(params))
        return None if deck is None else deck.to_dict()

    def _update_track_metadata(self, params: Dict[str, Any]):
        update_data = params.get("update", {})
        if not isinstance(update_data, dict):
            raise ValidationError("update must be an object")
        try:
            update = TrackMetadataUpdate.from_dict(update_data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValidationError(f"Invalid metadata update: {e}") from e
        return self.engine.update_track_metadata(_path(params), update).to_dict()

    def handle_request(self, request: Any) -> Dict[str, Any]:
        """Run one decoded request and build its response"""
        request_id = request.get("id") if isinstance(request, dict) else None
        try:
            if not isinstance(request, dict):
                raise ValidationError("Request must be a JSON object")
            method = request.get("method")
            handler = self.methods.get(method)
            if handler is None:
                raise ValidationError(f"Unknown method: {method}")
            params = request.get("params") or {}
            if not isinstance(params, dict):
                raise ValidationError("params must be an object")
            return {"id": request_id, "result": handler(params)}
        except EngineError as e:
            logger.debug("Request %s failed: %s", request_id, e)
            return {"id": request_id, "error": e.to_dict()}
        except Exception as e:
            logger.exception("Unhandled error while serving request %s", request_id)
            return {"id": request_id, "error": {"type": "InternalError", "message": str(e)}}

    def handle_line(self, line: str) -> Dict[str, Any]:
        try:
            request = json.loads(line)
        except json.JSONDecodeError as e:
            return {"id": None, "error": ValidationError(f"Malformed request: {e}").to_dict()}
        return self.handle_request(request)

    def _write(self, response: Dict[str, Any]):
        self.output_stream.write(json.dumps(response) + "\n")
        self.output_stream.flush()

    def serve_forever(self):
        """Answer requests until the input stream closes"""
        logger.info("Serving engine requests on stdin")
        for line in self.input_stream:
            if not line.strip():
                continue
            self._write(self.handle_line(line))
        logger.info("Input closed, shutting down")
