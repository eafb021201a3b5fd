"""Real-time: Server-Sent Events over streamed responses."""

from kiri.realtime.events import SSEEvent, event_stream, json_event

__all__ = ["SSEEvent", "event_stream", "json_event"]
