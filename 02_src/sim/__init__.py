"""Scripted dashboard scenario."""

from .catalog import InMemoryCatalog
from .sim import Sim, run_sim

__all__ = ["InMemoryCatalog", "Sim", "run_sim"]
