"""Tests for AzRest"""

# pylint: disable=protected-access,redefined-outer-name
import json
from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest
import requests
from pydantic import BaseModel

from citprep.azrest.azrest import AzOps, AzRest, LongPollPolicy
from citprep.azrest.models import AzList, AzureError, Req


class Thing(BaseModel):
	name: str
	colour: Optional[str] = None


def response(status: int = 200, body=None, headers: Optional[Dict[str, str]] = None, raw: Optional[bytes] = None) -> requests.Response:
	res = requests.Response()
	res.status_code = status
	res.reason = "Reason"
	if raw is not None:
		res._content = raw
	else:
		res._content = json.dumps(body).encode() if body is not None else b""
	res.headers.update(headers or {})
	return res


def mk_azrest(*responses: requests.Response, polls: int = 5) -> AzRest:
	"""AzRest over a session which replays the responses"""
	session = Mock()
	session.prepare_request = Mock(side_effect=lambda r: r)
	session.send = Mock(side_effect=list(responses))
	return AzRest(session, long_poll_policy=LongPollPolicy(polls=polls, default_wait=1.0), sleep=Mock())


def sent(azr: AzRest) -> List[requests.Request]:
	return [c.args[0] for c in azr.session.send.call_args_list]  # type: ignore


get_thing = Req.get("Things.Get", "/things/t1", "2020-01-01", Thing)


class TestToRequest:
	def test_params(self):
		r = mk_azrest().to_request(get_thing.add_params({"$filter": "name eq 't1'"}))

		assert r.method == "GET"
		assert r.url == "https://management.azure.com/things/t1"
		assert r.params == {"$filter": "name eq 't1'", "api-version": "2020-01-01"}

	def test_body(self):
		r = mk_azrest().to_request(Req.put("Things.Put", "/things/t1", "2020-01-01", Thing(name="t1"), Thing))

		assert r.headers["Content-Type"] == "application/json"
		assert json.loads(r.data) == {"name": "t1"}


class TestCall:
	def test_model(self):
		azr = mk_azrest(response(body={"name": "t1", "colour": "red"}))
		assert azr.call(get_thing) == Thing(name="t1", colour="red")

	def test_no_content(self):
		azr = mk_azrest(response(204))
		assert azr.call(Req.post("Things.Poke", "/things/t1/poke", "2020-01-01", None, Optional[Thing])) is None

	def test_paginated(self):
		azr = mk_azrest(
			response(body={"value": [{"name": "t1"}], "nextLink": "https://management.azure.com/things?page=2"}),
			response(body={"value": [{"name": "t2"}]}),
		)

		res = azr.call(Req.get("Things.List", "/things", "2020-01-01", AzList[Thing]))

		assert [t.name for t in res] == ["t1", "t2"]
		assert sent(azr)[1].url == "https://management.azure.com/things?page=2"


class TestErrors:
	def test_azure_error(self):
		azr = mk_azrest(response(404, {"error": {"code": "ResourceNotFound", "message": "no thing"}}))

		with pytest.raises(AzureError) as e:
			azr.call(get_thing)

		assert e.value.error.code == "ResourceNotFound"
		assert e.value.status_code == 404
		assert e.value.not_found

	def test_not_an_azure_error(self):
		azr = mk_azrest(response(502, raw=b"<html>Bad Gateway</html>"))

		with pytest.raises(AzureError) as e:
			azr.call(get_thing)

		assert e.value.error.code == "HTTP502"
		assert "Bad Gateway" in e.value.error.message
		assert not e.value.not_found

	def test_get_or_none(self):
		ops = AzOps(mk_azrest(response(404, {"error": {"code": "ResourceNotFound", "message": "no thing"}})))
		assert ops.get_or_none(get_thing) is None

	def test_get_or_none_raises_others(self):
		ops = AzOps(mk_azrest(response(403, {"error": {"code": "AuthorizationFailed", "message": "no"}})))
		with pytest.raises(AzureError):
			ops.get_or_none(get_thing)


class TestLongOperation:
	put_thing = Req.put("Things.Put", "/things/t1", "2020-01-01", Thing(name="t1"), Thing)
	status_url = "https://management.azure.com/operations/op1"

	def test_synchronous(self):
		azr = mk_azrest(response(200, {"name": "t1"}))

		assert azr.call_long_operation(self.put_thing) is None
		azr.sleep.assert_not_called()  # type: ignore

	def test_async_operation(self):
		azr = mk_azrest(
			response(201, {"name": "t1"}, {"Azure-AsyncOperation": self.status_url, "Retry-After": "2"}),
			response(200, {"status": "InProgress"}),
			response(200, {"status": "Succeeded"}),
		)

		op = azr.call_long_operation(self.put_thing)

		assert op is not None and op.status == "Succeeded"
		assert [r.url for r in sent(azr)[1:]] == [self.status_url, self.status_url]
		assert [c.args[0] for c in azr.sleep.call_args_list] == [2.0, 1.0]  # type: ignore

	def test_async_operation_fails(self):
		azr = mk_azrest(
			response(201, {"name": "t1"}, {"Azure-AsyncOperation": self.status_url}),
			response(200, {"status": "Failed", "error": {"code": "AllocationFailed", "message": "no capacity"}}),
		)

		with pytest.raises(AzureError) as e:
			azr.call_long_operation(self.put_thing)

		assert e.value.error.code == "AllocationFailed"

	def test_location(self):
		azr = mk_azrest(
			response(202, headers={"Location": self.status_url}),
			response(202, headers={"Location": self.status_url}),
			response(200, {"name": "t1"}),
		)

		op = azr.call_long_operation(self.put_thing)

		assert op is not None and op.status == "Succeeded"
		assert len(sent(azr)) == 3

	def test_timeout(self):
		azr = mk_azrest(
			response(201, {"name": "t1"}, {"Azure-AsyncOperation": self.status_url}),
			*[response(200, {"status": "InProgress"}) for _ in range(3)],
			polls=3,
		)

		with pytest.raises(AzureError) as e:
			azr.call_long_operation(self.put_thing)

		assert e.value.error.code == "LongPollTimeout"
		assert len(sent(azr)) == 4
