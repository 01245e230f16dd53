"""Word by Word — paced, resumable text playback.

WHY: Reading long text at a steady, chosen pace is easier when the text
is presented a few words (or a sentence) at a time. This package turns a
document into display units and plays them back at a words-per-minute
cadence, remembering where the reader stopped.

HOW: Three layers: segment (split text into units), pace (convert WPM
into a per-unit delay), play (a controller that advances through the
units with pause, resume, step and reset). Documents and their saved
positions live in a pluggable store; definitions come from a pluggable
lookup service.

RULES:
- The core never fetches or edits document text, it only reads it
- Saved positions are written back only at pause/stop boundaries
- One playback session per controller at any time
"""

__version__ = "0.1.0"
