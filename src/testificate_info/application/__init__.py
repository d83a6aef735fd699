"""
Application Layer

Orchestrates domain objects and infrastructure to serve chat commands.

Structure:
- commands/: write operations (PlayTrackHandler)
- services/: the playback queue state machine, its registry and the strategy chain
- interfaces/: port interfaces for infrastructure adapters
"""
