"""Tick-driven tactical battle simulation.

- core: data types, configuration, engine primitives and the event bus
- game: battleground, units, battle orchestration, windows and the game loop
"""

__version__ = "0.1.0"
