"""Azure Resource Providers"""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from citprep.azrest.azrest import AzOps
from citprep.azrest.models import ReadOnly, Req

l = logging.getLogger(__name__)

REGISTERED = "Registered"
REGISTERING = "Registering"


class Provider(BaseModel):
	"""A resource provider and its registration on a subscription"""

	model_config = ConfigDict(populate_by_name=True)

	rid: ReadOnly[str] = Field(alias="id", default=None)
	namespace: str
	registrationState: Optional[str] = None


class AzProviders:
	apiv = "2021-04-01"

	@staticmethod
	def Get(subscriptionId: str, resourceProviderNamespace: str) -> Req[Provider]:
		return Req.get(
			name="Providers.Get",
			path=f"/subscriptions/{subscriptionId}/providers/{resourceProviderNamespace}",
			apiv=AzProviders.apiv,
			ret_t=Provider,
		)

	@staticmethod
	def Register(subscriptionId: str, resourceProviderNamespace: str) -> Req[Provider]:
		return Req.post(
			name="Providers.Register",
			path=f"/subscriptions/{subscriptionId}/providers/{resourceProviderNamespace}/register",
			apiv=AzProviders.apiv,
			body=None,
			ret_t=Provider,
		)


class Providers(AzProviders, AzOps):
	"""Resource provider operations"""

	def ensure_registered(self, subscription_id: str, namespace: str) -> str:
		"""
		Register a provider if it isn't already.

		Registration continues in the background, so this returns the state Azure reports
		rather than waiting for it to become `Registered`.
		"""
		provider = self.run(self.Get(subscription_id, namespace))
		if provider.registrationState in {REGISTERED, REGISTERING}:
			l.info(f"resource provider {namespace} is {provider.registrationState}")
			return provider.registrationState

		l.info(f"registering resource provider {namespace} (was {provider.registrationState})")
		registered = self.run(self.Register(subscription_id, namespace))
		return registered.registrationState or REGISTERING
