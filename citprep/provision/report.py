"""Render a ProvisioningSummary for people and for other tools"""
import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import List

from citprep.provision.models import Outcome, ProvisioningSummary, ResourceSpec

OUTCOME_MARKS = {
	Outcome.created: "+",
	Outcome.existed: "=",
	Outcome.failed: "!",
}


class SummaryEncoder(json.JSONEncoder):
	"""Encoder for our dataclasses and enums"""

	def default(self, o):
		if is_dataclass(o) and not isinstance(o, type):
			return asdict(o)
		if isinstance(o, Enum):
			return o.value
		return super().default(o)


def to_json(summary: ProvisioningSummary) -> str:
	"""The summary as JSON, with resolved identifiers by spec key"""
	return json.dumps(
		{
			"ok": summary.ok,
			"results": list(summary.results),
			"skipped": list(summary.skipped),
			"providers": summary.providers,
			"identifiers": summary.identifiers(),
		},
		indent=2,
		cls=SummaryEncoder,
	)


def to_text(summary: ProvisioningSummary) -> str:
	"""The summary as a table, in the order the resources were provisioned"""
	lines: List[str] = []
	width = max((len(r.key) for r in summary.results), default=0)
	for r in summary.results:
		lines.append(f"{OUTCOME_MARKS[r.outcome]} {r.key:<{width}}  {r.outcome.value:<15}  {r.name}")
		if r.identifier:
			lines.append(f"    id: {r.identifier}")
		for k, v in r.details.items():
			lines.append(f"    {k}: {v}")
		if r.error:
			lines.append(f"    error ({r.reason.value if r.reason else 'unknown'}): {r.error}")
		for d in r.drift:
			lines.append(f"    drift: {d}")

	for s in summary.skipped:
		lines.append(f"- {s.feature:<{width}}  {'skipped':<15}  {s.reason}")

	if summary.providers:
		lines.append("")
		lines.append("resource providers:")
		for namespace, state in summary.providers.items():
			lines.append(f"    {namespace}: {state}")

	lines.append("")
	if summary.ok:
		lines.append(f"OK: {len(summary.results)} resources ready")
	else:
		lines.append(f"FAILED: {len(summary.failed)} of {len(summary.results)} resources need attention")
	return "\n".join(lines)


def plan_to_text(specs: List[ResourceSpec], skipped) -> str:
	"""The specs that would be provisioned, in order, without calling anything"""
	lines = []
	for i, spec in enumerate(specs, start=1):
		deps = f" after {', '.join(spec.depends_on)}" if spec.depends_on else ""
		lines.append(f"{i}. {spec.key}: {spec.kind.value} '{spec.name}' at {spec.scope}{deps}")
	for s in skipped:
		lines.append(f"-  {s.feature}: skipped, {s.reason}")
	return "\n".join(lines)
