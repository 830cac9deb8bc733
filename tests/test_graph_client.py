import httpx
import pytest

from effective_membership.graph.client import GraphAPIError, GraphClient
from effective_membership.graph.directory import DirectoryAPI, odata_quote
from effective_membership.graph.retry import is_retryable
from effective_membership.safety.guardian import SafetyGuardian, SafetyViolation

from conftest import GROUP_G

BASE = "https://graph.microsoft.com/v1.0"


def client_for(handler, **kwargs) -> GraphClient:
    return GraphClient("test-token", transport=httpx.MockTransport(handler), **kwargs)


async def test_pagination_follows_next_link():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if "skiptoken" in str(request.url):
            return httpx.Response(200, json={"value": [{"id": "u3"}]})
        return httpx.Response(200, json={
            "value": [{"id": "u1"}, {"id": "u2"}],
            "@odata.nextLink": f"{BASE}/groups/{GROUP_G}/members/microsoft.graph.user?$skiptoken=abc",
        })

    async with client_for(handler) as client:
        items = await client.get_all_pages(f"groups/{GROUP_G}/members/microsoft.graph.user")
        stats = client.get_stats()

    assert [i["id"] for i in items] == ["u1", "u2", "u3"]
    assert len(seen) == 2
    assert seen[0].url.params["$top"] == "999"
    assert seen[0].headers["Authorization"] == "Bearer test-token"
    # nextLink is followed verbatim, without re-adding $top
    assert "$top" not in seen[1].url.params
    assert stats == {"total_requests": 2, "pages_fetched": 2}


async def test_page_size_is_configurable():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"value": []})

    async with client_for(handler, page_size=100) as client:
        assert await client.get_all_pages("groups") == []

    assert seen[0].url.params["$top"] == "100"


async def test_error_status_raises_graph_api_error():
    def handler(request):
        return httpx.Response(
            429,
            json={"error": {"code": "TooManyRequests", "message": "Rate limit exceeded"}},
        )

    async with client_for(handler) as client:
        with pytest.raises(GraphAPIError) as excinfo:
            await client.get(f"groups/{GROUP_G}")

    err = excinfo.value
    assert err.status_code == 429
    assert str(err).startswith("Graph API Error 429")
    assert "Rate limit exceeded" in str(err)
    assert is_retryable(err)


async def test_not_found_is_not_retryable():
    def handler(request):
        return httpx.Response(404, json={"error": {"code": "Request_ResourceNotFound", "message": "gone"}})

    async with client_for(handler) as client:
        with pytest.raises(GraphAPIError) as excinfo:
            await client.get(f"groups/{GROUP_G}")

    assert excinfo.value.status_code == 404
    assert not is_retryable(excinfo.value)


async def test_non_json_error_body():
    def handler(request):
        return httpx.Response(502, text="upstream exploded")

    async with client_for(handler) as client:
        with pytest.raises(GraphAPIError) as excinfo:
            await client.get("groups")

    assert excinfo.value.status_code == 502
    assert is_retryable(excinfo.value)


async def test_client_requires_context_manager():
    client = client_for(lambda request: httpx.Response(200, json={}))
    with pytest.raises(RuntimeError):
        await client.get("groups")


async def test_directory_uses_type_cast_member_endpoints():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return httpx.Response(200, json={"value": []})

    async with client_for(handler) as client:
        directory = DirectoryAPI(client)
        await directory.list_user_members(GROUP_G)
        await directory.list_group_members(GROUP_G)

    assert paths == [
        f"/v1.0/groups/{GROUP_G}/members/microsoft.graph.user",
        f"/v1.0/groups/{GROUP_G}/members/microsoft.graph.group",
    ]


async def test_directory_group_search_filter():
    filters = []

    def handler(request):
        filters.append(request.url.params["$filter"])
        return httpx.Response(200, json={"value": [{"id": GROUP_G, "displayName": "O'Brien Team"}]})

    async with client_for(handler) as client:
        found = await DirectoryAPI(client).find_groups_by_name("O'Brien Team")

    assert found[0]["id"] == GROUP_G
    assert filters == ["displayName eq 'O''Brien Team'"]


async def test_directory_get_group():
    def handler(request):
        assert request.url.path == f"/v1.0/groups/{GROUP_G}"
        return httpx.Response(200, json={"id": GROUP_G, "displayName": "Engineering"})

    async with client_for(handler) as client:
        data = await DirectoryAPI(client).get_group(GROUP_G)

    assert data["displayName"] == "Engineering"


def test_odata_quote():
    assert odata_quote("plain") == "'plain'"
    assert odata_quote("it's") == "'it''s'"


def test_guardian_allows_reads_and_blocks_writes():
    guardian = SafetyGuardian()

    assert guardian.validate_request("GET", f"{BASE}/groups")
    with pytest.raises(SafetyViolation):
        guardian.validate_request("POST", f"{BASE}/groups/{GROUP_G}/members/$ref")
    with pytest.raises(SafetyViolation):
        guardian.validate_request("DELETE", f"{BASE}/groups/{GROUP_G}")

    audit = guardian.get_audit_record()
    assert audit["checks_performed"] == 3
    assert audit["violations_detected"] == 2
    assert audit["status"] == "VIOLATIONS_DETECTED"
    assert audit["violations"][0]["reason"] == "Membership write blocked"
