"""
Volcano - Party game session controller

A turn-based "hold the button" party game that paces players through
timed draw cycles while driving a heating/air-pump appliance:
- Session state machine (turns, rounds, scoring, elimination)
- Device command coordinator (phase gating, rate limits, de-duplication)
- Simulated opponent and simulated appliance for headless play
"""

__version__ = "0.1.0"
