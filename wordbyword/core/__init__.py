"""Core segmentation, pacing and playback modules.

WHY: The core package is the algorithmic heart of the reader: it decides
what the reader sees (segmenter), for how long (pacer), and in which order
and state (controller). Everything else is a collaborator behind a narrow
interface.

HOW: models.py defines the configuration and event types, segmenter.py
and pacer.py are pure functions, controller.py owns the playback session.

RULES:
- segmenter and pacer have no state and no I/O
- The controller is the only module that awaits or holds session state
- Documents are reached only through the DocumentStore protocol
"""
