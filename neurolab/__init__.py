"""NeuroLab simulation backend.

Physics-lite engines behind the MRI lab manager and the Neuro-Files optics
adventure, plus the stores that hold their configuration and progression.
"""

__version__ = "2025.10.0"
