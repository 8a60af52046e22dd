"""Turn an Environment into the ResourceSpecs which provision it"""
from dataclasses import dataclass
from typing import List

from citprep.provision.environment import Environment
from citprep.provision.models import (
	GalleryPayload,
	IdentityPayload,
	ImageDefinitionPayload,
	Kind,
	ResourceGroupPayload,
	ResourceSpec,
	RoleAssignmentPayload,
	RoleDefinitionPayload,
	Skipped,
)
from citprep.rid import rid

RESOURCE_GROUP = "resource-group"
MANAGED_IDENTITY = "managed-identity"
ROLE_DEFINITION = "role-definition"
ROLE_ASSIGNMENT = "role-assignment"
NETWORK_ROLE_DEFINITION = "network-role-definition"
NETWORK_ROLE_ASSIGNMENT = "network-role-assignment"
GALLERY = "gallery"
GALLERY_IMAGE_DEFINITION = "gallery-image-definition"


@dataclass(frozen=True)
class Plan:
	specs: List[ResourceSpec]
	skipped: List[Skipped]


def build(env: Environment) -> Plan:
	"""Declare the specs for an environment. Optional features which weren't asked for are skipped"""
	sub_scope = rid.serialise(env.subscription)
	rg_scope = rid.serialise(env.rg)

	specs = [
		ResourceSpec(RESOURCE_GROUP, Kind.resource_group, env.resource_group, sub_scope, ResourceGroupPayload(env.location)),
		ResourceSpec(MANAGED_IDENTITY, Kind.managed_identity, env.identity_name, rg_scope, IdentityPayload(env.location, env.settle_delay), depends_on=(RESOURCE_GROUP,)),
		ResourceSpec(
			ROLE_DEFINITION,
			Kind.role_definition,
			env.effective_role_name,
			rg_scope,
			RoleDefinitionPayload(
				actions=tuple(env.image_builder_actions),
				description=f"Azure Image Builder access to distribute images into {env.resource_group}",
				assignable_scopes=(rg_scope,),
			),
			depends_on=(RESOURCE_GROUP,),
		),
		ResourceSpec(
			ROLE_ASSIGNMENT,
			Kind.role_assignment,
			f"{env.identity_name} as {env.effective_role_name}",
			rg_scope,
			RoleAssignmentPayload(identity=MANAGED_IDENTITY, role_definition=ROLE_DEFINITION),
			depends_on=(MANAGED_IDENTITY, ROLE_DEFINITION),
		),
	]
	skipped = []

	if env.network_resource_group:
		network_scope = rid.serialise(env.subscription.rg(env.network_resource_group))
		specs += [
			ResourceSpec(
				NETWORK_ROLE_DEFINITION,
				Kind.role_definition,
				env.effective_network_role_name,
				network_scope,
				RoleDefinitionPayload(
					actions=tuple(env.network_actions),
					description=f"Azure Image Builder access to join virtual networks in {env.network_resource_group}",
					assignable_scopes=(network_scope,),
					requires_virtual_network=True,
				),
			),
			ResourceSpec(
				NETWORK_ROLE_ASSIGNMENT,
				Kind.role_assignment,
				f"{env.identity_name} as {env.effective_network_role_name}",
				network_scope,
				RoleAssignmentPayload(identity=MANAGED_IDENTITY, role_definition=NETWORK_ROLE_DEFINITION),
				depends_on=(MANAGED_IDENTITY, NETWORK_ROLE_DEFINITION),
			),
		]
	else:
		skipped.append(Skipped("networking", "no existing network resource group was given"))

	if env.gallery_name:
		specs.append(
			ResourceSpec(
				GALLERY,
				Kind.gallery,
				env.gallery_name,
				rg_scope,
				GalleryPayload(env.location, env.gallery_description),
				depends_on=(RESOURCE_GROUP,),
			)
		)
		if env.image_definition_name:
			gallery_scope = rid.serialise(env.rg.resource("Microsoft.Compute", "galleries", env.gallery_name))
			specs.append(
				ResourceSpec(
					GALLERY_IMAGE_DEFINITION,
					Kind.gallery_image_definition,
					env.image_definition_name,
					gallery_scope,
					ImageDefinitionPayload(
						location=env.location,
						publisher=env.publisher,
						offer=env.offer,
						sku=env.sku,
						hyper_v_generation=env.hyper_v_generation,
						security_type=env.security_type or None,
					),
					depends_on=(GALLERY,),
				)
			)
		else:
			skipped.append(Skipped(GALLERY_IMAGE_DEFINITION, "no image definition name was given"))
	else:
		skipped.append(Skipped(GALLERY, "no gallery name was given"))
		if env.image_definition_name:
			skipped.append(Skipped(GALLERY_IMAGE_DEFINITION, "an image definition needs a gallery name"))
		else:
			skipped.append(Skipped(GALLERY_IMAGE_DEFINITION, "no gallery name was given"))

	return Plan(specs, skipped)
