"""
SpreadLab: Point-Spread Rating & Edge Backtesting

A chronological Elo-style rating engine that projects point spreads,
measures edges against the market line, and replays betting strategies
without look-ahead bias.
"""

__version__ = "0.1.0"
