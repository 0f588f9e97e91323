"""Battle domain: battleground, units, presentation, windows and game loop."""
