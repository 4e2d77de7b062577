# tests/v1/test_webhooks_api.py
"""Tests for the publication webhook endpoints."""

import pytest
from fastapi import status

from tests.conftest import alchemy_delivery, publication_log, quicknode_delivery


@pytest.fixture()
def draft(client, owner, signed_body) -> dict:
    response = client.post("/create/group", json=signed_body(owner, content={"title": "draft"}))
    return response.json()["upload"]


def _post(client, path, delivery):
    body, headers = delivery
    return client.post(path, content=body, headers={**headers, "Content-Type": "application/json"})


def _status_of(services, cid) -> str:
    return services.store.find_by_cid(cid)[0].status


def test_alchemy_publishes_draft(client, services, owner, draft):
    response = _post(
        client,
        "/webhook/alchemy/publish",
        alchemy_delivery(publication_log(owner.address, draft["cid"])),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert data["assetCid"] == draft["cid"]
    assert data["applied"] == 1
    assert data["message"] == "File status updated to onchain"
    assert _status_of(services, draft["cid"]) == "onchain"


def test_second_channel_is_a_successful_noop(client, services, owner, draft):
    log = publication_log(owner.address, draft["cid"])
    first = _post(client, "/webhook/quicknode/publish", quicknode_delivery(log))
    second = _post(client, "/webhook/alchemy/publish", alchemy_delivery(log))

    assert first.status_code == status.HTTP_200_OK
    assert second.status_code == status.HTTP_200_OK
    assert second.json()["applied"] == 0
    assert second.json()["message"] == "Event already processed"
    assert _status_of(services, draft["cid"]) == "onchain"


def test_unknown_content_is_not_a_404(client, owner):
    response = _post(
        client,
        "/webhook/quicknode/publish",
        quicknode_delivery(publication_log(owner.address, "QmNeverStored")),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["applied"] == 0


def test_bad_signature_is_rejected(client, services, owner, draft):
    body, headers = alchemy_delivery(publication_log(owner.address, draft["cid"]))
    headers["X-Alchemy-Signature"] = "0" * 64
    response = _post(client, "/webhook/alchemy/publish", (body, headers))

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "invalid_signature"
    assert _status_of(services, draft["cid"]) == "pending"


def test_wrong_channel_endpoint(client, owner, draft):
    response = _post(
        client,
        "/webhook/quicknode/publish",
        alchemy_delivery(publication_log(owner.address, draft["cid"])),
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "missing_signature"


def test_delivery_without_event(client):
    response = _post(client, "/webhook/alchemy/publish", alchemy_delivery())
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "no_asset_data"


def test_unified_endpoint_detects_channel(client, services, owner, draft):
    response = _post(
        client,
        "/webhook/publish",
        quicknode_delivery(publication_log(owner.address, draft["cid"])),
    )
    assert response.status_code == status.HTTP_200_OK
    assert _status_of(services, draft["cid"]) == "onchain"


def test_unified_endpoint_without_signature_headers(client):
    response = client.post("/webhook/publish", content=b"{}")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "missing_signature"


def test_published_draft_leaves_pending_list(client, services, owner, draft):
    _post(
        client,
        "/webhook/alchemy/publish",
        alchemy_delivery(publication_log(owner.address, draft["cid"])),
    )
    token = services.tokens.issue(owner.address).token
    response = client.get(
        "/pendingFilesByOwner",
        params={"owner": owner.address},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.json()["files"] == []
