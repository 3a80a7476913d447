"""
panelsim: Monte Carlo harness for Hausman test reliability under missing data.

Contains:
- data: synthetic panel generation and missingness injection
- model: fixed-effects / random-effects estimation and the Hausman test
- engine: scenario design, trial runner, sweep controller, aggregation
"""

__version__ = "0.1.0"
