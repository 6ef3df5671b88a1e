"""
Curriculum graph models.

The graph is loaded once per process and never mutated: atoms keep their
authored order, which the phase selector relies on for "first N" rules.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Atom:
    """Smallest addressable curriculum unit."""

    atom_id: str
    title: str
    module_id: str
    prerequisites: tuple[str, ...] = ()
    misconception_ids: tuple[str, ...] = ()
    mastery_profile_id: str | None = None

    @property
    def has_misconceptions(self) -> bool:
        return len(self.misconception_ids) > 0

    @classmethod
    def from_dict(cls, data: dict[str, Any], module_id: str) -> Atom:
        return cls(
            atom_id=data["atom_id"],
            title=data.get("title", data["atom_id"]),
            module_id=data.get("module_id", module_id),
            prerequisites=tuple(data.get("prerequisites") or ()),
            misconception_ids=tuple(data.get("misconception_ids") or ()),
            mastery_profile_id=data.get("mastery_profile_id"),
        )


@dataclass(frozen=True)
class Module:
    """A group of atoms (chapter / unit)."""

    module_id: str
    title: str
    atom_ids: tuple[str, ...] = ()


@dataclass
class Curriculum:
    """Static curriculum graph: modules, atoms in authored order, template library."""

    curriculum_id: str
    schema_version: str
    subject: str = "math"
    modules: list[Module] = field(default_factory=list)
    atoms: list[Atom] = field(default_factory=list)
    templates: dict[str, dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._atoms_by_id = {atom.atom_id: atom for atom in self.atoms}
        self._modules_by_id = {module.module_id: module for module in self.modules}

    @property
    def is_empty(self) -> bool:
        return not self.atoms

    @property
    def module_ids(self) -> set[str]:
        return set(self._modules_by_id)

    def atom(self, atom_id: str) -> Atom | None:
        return self._atoms_by_id.get(atom_id)

    def module(self, module_id: str) -> Module | None:
        return self._modules_by_id.get(module_id)

    def atoms_in_modules(self, module_ids: Iterable[str]) -> list[Atom]:
        """Atoms belonging to the given modules, in curriculum order."""
        wanted = set(module_ids)
        return [atom for atom in self.atoms if atom.module_id in wanted]

    @classmethod
    def empty(cls) -> Curriculum:
        return cls(curriculum_id="empty", schema_version="0")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Curriculum:
        """
        Build a curriculum from its JSON document.

        Expected shape::

            {"curriculum_id": ..., "schema_version": ..., "subject": "math",
             "modules": [{"module_id": ..., "title": ..., "atoms": [{...}]}],
             "templates": {"MCQ_CONCEPT": {"display_name": ...}}}
        """
        modules: list[Module] = []
        atoms: list[Atom] = []
        seen: set[str] = set()

        for raw_module in data.get("modules", []):
            module_id = raw_module["module_id"]
            module_atoms = [Atom.from_dict(raw, module_id) for raw in raw_module.get("atoms", [])]
            for atom in module_atoms:
                # First occurrence wins when an atom is listed under two modules
                if atom.atom_id in seen:
                    continue
                seen.add(atom.atom_id)
                atoms.append(atom)
            modules.append(
                Module(
                    module_id=module_id,
                    title=raw_module.get("title", module_id),
                    atom_ids=tuple(a.atom_id for a in module_atoms),
                )
            )

        return cls(
            curriculum_id=data.get("curriculum_id", "unknown"),
            schema_version=str(data.get("schema_version", "0")),
            subject=data.get("subject", "math"),
            modules=modules,
            atoms=atoms,
            templates=dict(data.get("templates", {})),
        )
