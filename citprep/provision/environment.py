"""Settings describing the environment to provision"""
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from citprep.rid.rid import ResourceGroup, Subscription

DEFAULT_PROVIDERS = [
	"Microsoft.Compute",
	"Microsoft.KeyVault",
	"Microsoft.Storage",
	"Microsoft.Network",
	"Microsoft.VirtualMachineImages",
	"Microsoft.ManagedIdentity",
	"Microsoft.ContainerInstance",
]

# What Azure Image Builder needs to distribute images into a resource group or gallery
IMAGE_BUILDER_ACTIONS = [
	"Microsoft.Compute/galleries/read",
	"Microsoft.Compute/galleries/images/read",
	"Microsoft.Compute/galleries/images/versions/read",
	"Microsoft.Compute/galleries/images/versions/write",
	"Microsoft.Compute/images/write",
	"Microsoft.Compute/images/read",
	"Microsoft.Compute/images/delete",
]

# What Azure Image Builder needs to put its build VM on an existing virtual network
NETWORK_ACTIONS = [
	"Microsoft.Network/virtualNetworks/read",
	"Microsoft.Network/virtualNetworks/subnets/join/action",
]


class Environment(BaseSettings):
	"""
	Settings for provisioning Custom Image Template prerequisites

	Every setting can be given as an environment variable prefixed with `CITPREP_`,
	for example `CITPREP_RESOURCE_GROUP`.
	"""

	model_config = SettingsConfigDict(env_prefix="CITPREP_")

	subscription_id: str
	resource_group: str
	location: str

	identity_name: str = "id-avd-image-builder"
	role_name: Optional[str] = None
	image_builder_actions: List[str] = Field(default_factory=lambda: list(IMAGE_BUILDER_ACTIONS))

	network_resource_group: Optional[str] = None
	network_role_name: Optional[str] = None
	network_actions: List[str] = Field(default_factory=lambda: list(NETWORK_ACTIONS))

	gallery_name: Optional[str] = None
	gallery_description: str = "Azure Virtual Desktop images"
	image_definition_name: Optional[str] = None
	publisher: str = "MicrosoftWindowsDesktop"
	offer: str = "Windows-11"
	sku: str = "win11-23h2-avd"
	hyper_v_generation: str = "V2"
	security_type: Optional[str] = "TrustedLaunch"

	settle_delay: float = Field(default=10.0, ge=0)
	providers: List[str] = Field(default_factory=lambda: list(DEFAULT_PROVIDERS))

	@classmethod
	def from_yaml(cls, path: Optional[Union[str, Path]] = None, **overrides: Any) -> Environment:
		"""
		Load settings from a YAML file, with overrides on top.

		Overrides which are None are ignored, so unset CLI options don't clobber the file.
		"""
		data = {}
		if path is not None:
			with open(path, mode="r", encoding="utf-8") as f:
				try:
					data = yaml.safe_load(f) or {}
				except yaml.YAMLError as e:
					raise ValueError(f"could not parse {path}: {e}") from e
			if not isinstance(data, dict):
				raise ValueError(f"expected a mapping of settings in {path}")
		data.update({k: v for k, v in overrides.items() if v is not None})
		return cls(**data)

	@property
	def subscription(self) -> Subscription:
		return Subscription(self.subscription_id)

	@property
	def rg(self) -> ResourceGroup:
		return self.subscription.rg(self.resource_group)

	@property
	def effective_role_name(self) -> str:
		return self.role_name or f"AVD Image Builder ({self.resource_group})"

	@property
	def effective_network_role_name(self) -> str:
		return self.network_role_name or f"AVD Image Builder Network ({self.network_resource_group})"
