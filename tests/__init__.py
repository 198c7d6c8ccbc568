"""Test package for the Grid Reaction Trainer.

Core tests drive the grid task engine with a fake clock so timing is fully
deterministic.  UI smoke tests run headlessly using pygame's dummy video
driver to avoid opening real windows.  To run these tests, execute
``pytest`` from the project root.
"""
