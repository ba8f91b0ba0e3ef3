"""
Services package for the A2E2 feedback engine.

This package holds the in-process caller around the engine:
- Meeting registry: participant states, histories and meeting-scoped state
- Feedback service: per-participant and per-meeting evaluation ticks
"""
