"""
An in-memory stand-in for the parts of Azure Resource Manager we provision

It answers `Req`s the way AzRest would, so operations and the Provisioner can be exercised without a subscription.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, TypeAdapter

from citprep.azrest.models import AzList, AzOperation, AzureError, AzureErrorDetails, Req

ROLE_DEFINITIONS = "/providers/microsoft.authorization/roledefinitions"
ROLE_ASSIGNMENTS = "/providers/microsoft.authorization/roleassignments"
VIRTUAL_NETWORKS = "/providers/microsoft.network/virtualnetworks"
IDENTITIES = "/providers/microsoft.managedidentity/userassignedidentities/"
IMAGES = "/images/"

FILTER_EQ = re.compile(r"^(\w+) eq '((?:[^']|'')*)'$")


def error(code: str, status: int, message: str = "") -> AzureError:
	return AzureError(AzureErrorDetails(code=code, message=message or code), status)


@dataclass
class Failure:
	method: str
	fragment: str
	code: str
	status: int


class FakeAzure:
	"""Resources are kept as JSON-like dicts, keyed by their lowercased resource ID"""

	def __init__(self):
		self.resources: Dict[str, Dict[str, Any]] = {}
		self.providers: Dict[str, str] = {}
		self.calls: List[Tuple[str, str]] = []
		self.failures: List[Failure] = []

	# arranging

	def fail(self, method: str, fragment: str, code: str = "InternalServerError", status: int = 500):
		"""Make requests with this method, whose path contains the fragment, fail"""
		self.failures.append(Failure(method, fragment.lower(), code, status))

	def add(self, rid: str, data: Dict[str, Any]) -> Dict[str, Any]:
		"""Put a resource into the fake directly"""
		obj = {"id": rid, "name": rid.rsplit("/", 1)[-1], **data}
		self.resources[rid.lower()] = obj
		return obj

	# inspecting

	def writes(self) -> List[Tuple[str, str]]:
		return [(m, p) for m, p in self.calls if m in {"PUT", "POST"}]

	def puts(self) -> List[str]:
		return [p for m, p in self.calls if m == "PUT"]

	def principal_of(self, identity_rid: str) -> str:
		return self.resources[identity_rid.lower()]["properties"]["principalId"]

	# the AzRest interface

	def call(self, req: Req) -> Any:
		self.calls.append((req.method, req.path))
		path = req.path.lower()
		for f in self.failures:
			if f.method == req.method and f.fragment in path:
				raise error(f.code, f.status)

		if req.method == "GET":
			data = self._get(path, req.params)
		elif req.method == "PUT":
			data = self._put(req.path, self._body(req))
		elif req.method == "POST":
			data = self._post(path)
		else:
			raise error("MethodNotAllowed", 405)
		return self._respond(req, data)

	def call_long_operation(self, req: Req) -> Optional[AzOperation]:
		self.call(req.with_ret_t(dict))
		return AzOperation(status="Succeeded")

	@staticmethod
	def _body(req: Req) -> Dict[str, Any]:
		if req.body is None:
			return {}
		if isinstance(req.body, BaseModel):
			return req.body.model_dump(mode="json", by_alias=True, exclude_none=True)
		return dict(req.body)

	@staticmethod
	def _respond(req: Req, data: Any) -> Any:
		res = TypeAdapter(req.ret_t).validate_python(data)
		if isinstance(res, AzList):
			return res.value
		return res

	# reading

	def _get(self, path: str, params: Dict[str, str]) -> Any:
		filters = self._filters(params)
		if path.endswith(ROLE_DEFINITIONS):
			scope = path[: -len(ROLE_DEFINITIONS)]
			return {"value": [r for r in self._of_type(ROLE_DEFINITIONS + "/") if self._visible(r, scope) and self._matches(r["properties"], filters)]}
		if path.endswith(ROLE_ASSIGNMENTS):
			scope = path[: -len(ROLE_ASSIGNMENTS)]
			return {"value": [r for r in self._of_type(ROLE_ASSIGNMENTS + "/") if scope.startswith(r["properties"]["scope"].lower()) and self._matches(r["properties"], filters)]}
		if path.endswith(VIRTUAL_NETWORKS):
			return {"value": [r for k, r in self.resources.items() if k.startswith(path + "/")]}
		if re.fullmatch(r"/subscriptions/[^/]+/providers/[^/]+", path):
			namespace = path.rsplit("/", 1)[-1]
			return {"namespace": namespace, "registrationState": self.providers.get(namespace, "NotRegistered")}

		if path not in self.resources:
			raise error("ResourceNotFound", 404, f"{path} was not found")
		return self.resources[path]

	@staticmethod
	def _filters(params: Dict[str, str]) -> Dict[str, str]:
		f = params.get("$filter")
		if not f:
			return {}
		m = FILTER_EQ.match(f)
		if not m:
			raise error("InvalidFilter", 400, f)
		return {m.group(1): m.group(2).replace("''", "'")}

	@staticmethod
	def _matches(properties: Dict[str, Any], filters: Dict[str, str]) -> bool:
		# Azure's OData filters are case-insensitive
		return all(str(properties.get(k, "")).lower() == v.lower() for k, v in filters.items())

	def _of_type(self, fragment: str) -> List[Dict[str, Any]]:
		return [r for k, r in self.resources.items() if fragment in k]

	@staticmethod
	def _visible(role: Dict[str, Any], scope: str) -> bool:
		return any(scope.startswith(s.lower()) for s in role["properties"].get("assignableScopes", []))

	# writing

	def _require(self, rid: str, code: str):
		if rid.lower() not in self.resources:
			raise error(code, 404, f"{rid} was not found")

	def _put(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
		parts = path.split("/")
		rg_path = "/".join(parts[:5]) if len(parts) > 5 and parts[3].lower() == "resourcegroups" else None

		if path.lower().split("/")[-2] == "roledefinitions":
			return self._put_role_definition(path, body, rg_path)
		if path.lower().split("/")[-2] == "roleassignments":
			return self._put_role_assignment(path, body, rg_path)

		if rg_path and len(parts) > 5:
			self._require(rg_path, "ResourceGroupNotFound")
		if IMAGES in path.lower():
			self._require(path.rsplit("/", 2)[0], "ParentResourceNotFound")

		existing = self.resources.get(path.lower())
		obj = self.add(path, {**(existing or {}), **body})
		if IDENTITIES in path.lower():
			props = obj.setdefault("properties", {})
			props.setdefault("principalId", str(uuid4()))
			props.setdefault("clientId", str(uuid4()))
			props.setdefault("tenantId", "00000000-0000-0000-0000-000000000000")
		return obj

	def _put_role_definition(self, path: str, body: Dict[str, Any], rg_path: Optional[str]) -> Dict[str, Any]:
		if rg_path:
			self._require(rg_path, "ResourceGroupNotFound")
		sub = "/".join(path.split("/")[:3])
		name = path.rsplit("/", 1)[-1]
		return self.add(f"{sub}/providers/Microsoft.Authorization/roleDefinitions/{name}", body)

	def _put_role_assignment(self, path: str, body: Dict[str, Any], rg_path: Optional[str]) -> Dict[str, Any]:
		if rg_path:
			self._require(rg_path, "ResourceGroupNotFound")
		props = body["properties"]
		role_name = props["roleDefinitionId"].rsplit("/", 1)[-1].lower()
		if not any(k.endswith("/" + role_name) for k in self.resources if ROLE_DEFINITIONS in k):
			raise error("RoleDefinitionDoesNotExist", 400)
		principals = {r.get("properties", {}).get("principalId") for r in self._of_type(IDENTITIES)}
		if props["principalId"] not in principals:
			raise error("PrincipalNotFound", 400)
		scope = path.split("/providers/Microsoft.Authorization/roleAssignments/")[0]
		return self.add(path, {**body, "properties": {**props, "scope": scope}})

	def _post(self, path: str) -> Dict[str, Any]:
		m = re.fullmatch(r"/subscriptions/[^/]+/providers/([^/]+)/register", path)
		if not m:
			raise error("NotFound", 404)
		self.providers[m.group(1)] = "Registering"
		return {"namespace": m.group(1), "registrationState": "Registering"}
