"""Access the Azure HTTP API"""
from __future__ import annotations

import dataclasses
import json
import logging
import time
from typing import Callable, Optional, Type, Union

import requests
from pydantic import TypeAdapter, ValidationError

from citprep.azrest.models import AzList, AzOperation, AzureError, AzureErrorDetails, AzureErrorResponse, Req, Ret_T

l = logging.getLogger(__name__)


def fmt_req(req: Req) -> str:
	"""Format a request"""
	return req.name


def fmt_log(msg: str, req: Req, **kwargs: Union[str, int, float]) -> str:
	"""Format a log statement referencing a request"""
	arg_s = " ".join(f"{k}={v}" for k, v in kwargs.items())
	return f"{msg} req={fmt_req(req)} {arg_s}"


@dataclasses.dataclass
class LongPollPolicy:
	"""Parameters for following long-running operations"""

	polls: int = 60  # number of times to check the operation status. This is in addition to the initial request
	default_wait: float = 5.0  # seconds to wait if Azure does not send a Retry-After


HEADER_LOCATION = "Location"
HEADER_ASYNC = "Azure-AsyncOperation"
HEADER_RETRY_AFTER = "Retry-After"

TERMINAL_FAILURES = {"failed", "canceled", "cancelled"}


class AzRest:
	"""Access the Azure HTTP API"""

	def __init__(
		self,
		session: requests.Session,
		base_url: str = "https://management.azure.com",
		long_poll_policy: LongPollPolicy = LongPollPolicy(),
		sleep: Callable[[float], None] = time.sleep,
	):
		self.session = session

		self.base_url = base_url
		self.long_poll_policy = long_poll_policy
		self.sleep = sleep

	@classmethod
	def from_credential(cls, credential, token_scope="https://management.azure.com//.default", base_url="https://management.azure.com") -> AzRest:
		"""Create from an Azure credential"""
		token = credential.get_token(token_scope)
		session = requests.Session()
		session.headers["Authorization"] = f"Bearer {token.token}"

		return cls(session=session, base_url=base_url)

	def to_request(self, req: Req) -> requests.Request:
		"""Convert a Req into a requests.Request"""
		r = requests.Request(method=req.method, url=self.base_url + req.path)
		r.params = dict(req.params)
		if req.apiv:
			r.params["api-version"] = req.apiv
		if req.body:
			r.headers["Content-Type"] = "application/json"
			if isinstance(req.body, dict):
				# allows you to do your own serialisation
				r.data = json.dumps(req.body)
			else:
				r.data = req.body.model_dump_json(exclude_none=True, by_alias=True)
		return r

	def call(self, req: Req[Ret_T]) -> Ret_T:
		"""Make the request to Azure"""
		r = self.to_request(req)
		res = self._deserialise(req, self._call(req, r))
		if res is None:
			return res

		if isinstance(res, AzList):
			res_list: AzList = res
			acc = res.value
			page = 0
			while res_list.nextLink:
				page += 1
				l.debug(fmt_log("paginating req", req, page=str(page)))
				r = requests.Request(method="GET", url=res_list.nextLink)
				res_list = self._deserialise(req, self._call(req, r))  # type: ignore  # we know the req
				acc.extend(res_list.value)
			return acc  # type: ignore  # we're deliberately unwrapping a list into its primitive type
		else:
			return res

	def _call(self, req: Req, r: requests.Request) -> requests.Response:
		l.debug(fmt_log("making req", req))
		res = self._do_call(r)
		if isinstance(res, AzureError):
			l.debug(fmt_log("req returned error", req, status=str(res.status_code), err=res.error.code))
			raise res
		l.debug(fmt_log("req complete", req, status=res.status_code))
		return res

	def _do_call(self, r: requests.Request) -> Union[requests.Response, AzureError]:
		"""Make a single request to Azure, without pagination"""
		res = self.session.send(self.session.prepare_request(r))
		if not res.ok:
			return self._as_error(res)
		return res

	@staticmethod
	def _as_error(res: requests.Response) -> AzureError:
		"""Deserialise an error response, even if Azure didn't send an error document"""
		try:
			return AzureErrorResponse.model_validate_json(res.content).error.as_exception(res.status_code)
		except ValidationError:
			message = res.text or res.reason or ""
			return AzureError(AzureErrorDetails(code=f"HTTP{res.status_code}", message=message), res.status_code)

	def _deserialise(self, req: Req[Ret_T], res: requests.Response) -> Ret_T:
		if req.ret_t is Type[None]:  # noqa: E721  # we're comparing types here
			return None  # type: ignore

		type_adapter = TypeAdapter(req.ret_t)
		if len(res.content) == 0:
			return type_adapter.validate_python(None)

		deserialised = type_adapter.validate_json(res.content)
		return deserialised

	def _get_longpoll_location(self, res: requests.Response) -> Optional[str]:
		if HEADER_ASYNC in res.headers:
			return res.headers[HEADER_ASYNC]
		elif HEADER_LOCATION in res.headers:
			return res.headers[HEADER_LOCATION]
		else:
			return None

	def _get_time_to_wait(self, res: requests.Response) -> float:
		if HEADER_RETRY_AFTER in res.headers:
			return float(res.headers[HEADER_RETRY_AFTER])
		else:
			return self.long_poll_policy.default_wait

	def call_long_operation(self, req: Req[Ret_T]) -> Optional[AzOperation]:
		"""
		Make a call for a long-running operation, where we will need to check a new location for the result.

		Returns the final operation status, or None if Azure completed the request synchronously.
		Read the resource afterwards to get its representation.
		"""
		ir = self._call(req, self.to_request(req))

		result_location = self._get_longpoll_location(ir)
		if result_location is None:
			if ir.status_code not in {200, 201, 204}:
				l.warning(fmt_log("req longpoll returned unexpected status", req, status=ir.status_code))
			return None

		status_req = Req.get(req.name + ".status", result_location, None, ret_t=AzOperation)
		# `Location` polling returns the resource when done, `Azure-AsyncOperation` returns a status document
		has_status_document = HEADER_ASYNC in ir.headers

		polls = 0
		res = ir
		while True:
			if polls >= self.long_poll_policy.polls:
				msg = f"req longpoll did not complete after {polls} polls"
				l.error(fmt_log(msg, req))
				raise AzureError(AzureErrorDetails(code="LongPollTimeout", message=msg))

			time_to_wait = self._get_time_to_wait(res)
			l.debug(fmt_log("longpoll request sleep", req, attempt=polls, time=time_to_wait))
			self.sleep(time_to_wait)
			polls += 1

			# the status location is an absolute URL
			res = self._call(status_req, requests.Request(method="GET", url=result_location))
			if res.status_code == 202:
				continue
			if not has_status_document or len(res.content) == 0:
				return AzOperation(status="Succeeded")

			operation = AzOperation.model_validate_json(res.content)
			state = operation.status.lower()
			if state == "succeeded":
				return operation
			if state in TERMINAL_FAILURES:
				error = operation.error or AzureErrorDetails(code=f"Operation{operation.status}", message=f"operation {operation.status}")
				raise error.as_exception(res.status_code)


class AzOps:
	"""Parent class for helpers which dispatch requests to Azure"""

	def __init__(self, azrest: AzRest):
		self.azrest = azrest

	def run(self, req: Req[Ret_T]) -> Ret_T:
		"""Call a request"""
		return self.azrest.call(req)

	def run_long(self, req: Req) -> Optional[AzOperation]:
		"""Call a request which might start a long-running operation"""
		return self.azrest.call_long_operation(req)

	def get_or_none(self, req: Req[Ret_T]) -> Optional[Ret_T]:
		"""Call a request, mapping a 404 to None"""
		try:
			return self.run(req)
		except AzureError as e:
			if e.not_found:
				return None
			raise


def rid_eq(a: Optional[str], b: Optional[str]) -> bool:
	"""Whether 2 Azure resource IDs are the same"""
	return a is not None and b is not None and a.lower() == b.lower()
