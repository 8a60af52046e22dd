"""Idempotently provision the prerequisites for Custom Image Template builds"""
from __future__ import annotations

import logging
import time
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import requests

from citprep.arm.providers import Providers
from citprep.azrest.azrest import AzRest
from citprep.azrest.models import AzureError
from citprep.provision import graph, plan
from citprep.provision.environment import Environment
from citprep.provision.models import FailureReason, Kind, ProvisioningResult, ProvisioningSummary, ResourceSpec
from citprep.provision.steps import Step, default_steps, describe_error, fmt_spec

l = logging.getLogger(__name__)

PROVIDER_ERROR = "Error"


class Provisioner:
	"""
	Ensure that the resources an Environment needs exist.

	Each spec is checked against the live environment and created only if it's missing,
	so a run can be repeated safely.
	A spec which fails does not stop the run; only specs which depend on it are given up on.

	>>> from azure.identity import DefaultAzureCredential
	>>> provisioner = Provisioner(AzRest.from_credential(DefaultAzureCredential()))
	>>> summary = provisioner.ensure(Environment(subscription_id="...", resource_group="rg1", location="eastus"))
	>>> summary.identifiers()
	"""

	def __init__(self, azrest: AzRest, steps: Optional[Mapping[Kind, Step]] = None, sleep: Callable[[float], None] = time.sleep):
		self.providers = Providers(azrest)
		self.steps = steps if steps is not None else default_steps(azrest, sleep)

	def ensure(self, env: Environment) -> ProvisioningSummary:
		"""Provision everything the Environment asks for and summarise what happened"""
		the_plan = plan.build(env)
		graph.order(the_plan.specs)  # raises for a bad graph before anything is touched
		for skipped in the_plan.skipped:
			l.info(f"skipping {skipped.feature}: {skipped.reason}")

		providers = self.register_providers(env.subscription_id, env.providers)
		results = self.run(the_plan.specs)
		summary = ProvisioningSummary(results, the_plan.skipped, providers)

		if summary.ok:
			l.info(f"provisioned {len(results)} resources")
		else:
			l.error(f"{len(summary.failed)} of {len(results)} resources failed: {[r.key for r in summary.failed]}")
		return summary

	def register_providers(self, subscription_id: str, namespaces: Sequence[str]) -> Dict[str, str]:
		"""Make sure resource providers are registered. Failing to do so is only a warning"""
		states = {}
		for namespace in namespaces:
			try:
				states[namespace] = self.providers.ensure_registered(subscription_id, namespace)
			except (AzureError, requests.RequestException) as e:
				l.warning(f"could not register resource provider {namespace}: {describe_error(e)}")
				states[namespace] = PROVIDER_ERROR
		return states

	def run(self, specs: Sequence[ResourceSpec]) -> List[ProvisioningResult]:
		"""Ensure each spec in dependency order, recording exactly one result for each"""
		results: Dict[str, ProvisioningResult] = {}
		for spec in graph.order(specs):
			failed_deps = [d for d in spec.depends_on if not results[d].ok]
			if failed_deps:
				msg = f"depends on {', '.join(failed_deps)} which failed"
				l.error(f"{fmt_spec(spec)}: not attempted, {msg}")
				result = ProvisioningResult.failure(spec, FailureReason.missing_dependency, msg)
			else:
				resolved = MappingProxyType({d: results[d] for d in spec.depends_on})
				result = self.steps[spec.kind].ensure(spec, resolved)
			results[spec.key] = result
		return list(results.values())
