"""Ordering ResourceSpecs by their dependencies"""
from graphlib import CycleError, TopologicalSorter
from typing import Dict, List, Sequence, Set

from citprep.provision.models import ResourceSpec


class DependencyError(ValueError):
	"""The specs do not form a valid dependency graph"""


def order(specs: Sequence[ResourceSpec]) -> List[ResourceSpec]:
	"""
	Order specs so that every spec comes after all of its dependencies.

	The order is deterministic: among the specs which are ready at the same time,
	the one declared first goes first.
	"""
	by_key: Dict[str, ResourceSpec] = {}
	for spec in specs:
		if spec.key in by_key:
			raise DependencyError(f"duplicate spec key {spec.key!r}")
		by_key[spec.key] = spec

	for spec in specs:
		unknown = [d for d in spec.depends_on if d not in by_key]
		if unknown:
			raise DependencyError(f"spec {spec.key!r} depends on unknown specs {unknown}")

	position = {spec.key: i for i, spec in enumerate(specs)}
	sorter: TopologicalSorter[str] = TopologicalSorter({spec.key: spec.depends_on for spec in specs})
	try:
		sorter.prepare()
	except CycleError as e:
		raise DependencyError(f"dependency cycle between specs {e.args[1]}") from e

	ordered = []
	ready: Set[str] = set()
	while sorter.is_active():
		ready.update(sorter.get_ready())
		# one at a time, so a spec unlocked by an earlier one can overtake later declarations
		first = min(ready, key=position.__getitem__)
		ready.remove(first)
		ordered.append(by_key[first])
		sorter.done(first)
	return ordered
