"""
Awareness Anchor - mindfulness chimes answered with head or pointer gestures.

Package layout:
- config: Default constants and live detection settings
- core: Shared types, response recording, scheduling, host wiring, workers
- detection: Signal filters, gesture classification, pipelines, arbitration
- stats: Event history, time-in-state estimation, period summaries
"""

__version__ = "1.0.0"
