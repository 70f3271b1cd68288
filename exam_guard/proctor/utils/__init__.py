"""Utility modules"""

from .logging import log_proctor_event
from .spectrum import SpectrumAnalyser

__all__ = ["log_proctor_event", "SpectrumAnalyser"]
