"""Curriculum graph: atoms grouped into modules, loaded once per process."""

from practice_engine.curriculum.loader import load_curriculum
from practice_engine.curriculum.models import Atom, Curriculum, Module

__all__ = ["Atom", "Curriculum", "Module", "load_curriculum"]
