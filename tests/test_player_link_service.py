"""
Tests for PlayerLinkService.
"""

import pytest

from services.error_codes import (
    EXTERNAL_API_ERROR,
    PLAYER_NOT_FOUND,
    PLAYER_NOT_LINKED,
    VALIDATION_ERROR,
)
from services.exceptions import GatewayError
from services.player_link_service import PlayerLinkService


@pytest.fixture
def link_service(gateway):
    gateway.players["s1mple"] = {"player_id": "p1", "nickname": "s1mple"}
    return PlayerLinkService(gateway)


def test_link_resolves_player_id(link_service):
    result = link_service.link(42, " s1mple ")

    assert result.success
    assert result.value.faceit_player_id == "p1"
    assert link_service.get_link(42).value.nickname == "s1mple"


def test_link_unknown_nickname(link_service):
    result = link_service.link(42, "ghost")

    assert not result.success
    assert result.error_code == PLAYER_NOT_FOUND


def test_link_empty_nickname(link_service):
    assert link_service.link(42, "   ").error_code == VALIDATION_ERROR


def test_link_gateway_outage(link_service, gateway):
    def unavailable(nickname):
        raise GatewayError("down", status=503)

    gateway.find_player = unavailable

    result = link_service.link(42, "s1mple")

    assert result.error_code == EXTERNAL_API_ERROR
    assert link_service.get_link(42).error_code == PLAYER_NOT_LINKED


def test_payload_without_player_id(link_service, gateway):
    gateway.players["broken"] = {"nickname": "broken"}

    assert link_service.link(42, "broken").error_code == PLAYER_NOT_FOUND


def test_relink_replaces_and_unlink_removes(link_service, gateway):
    gateway.players["zywoo"] = {"player_id": "p2", "nickname": "ZywOo"}
    link_service.link(42, "s1mple")
    link_service.link(42, "zywoo")

    assert link_service.get_link(42).value.faceit_player_id == "p2"
    assert link_service.unlink(42) is True
    assert link_service.unlink(42) is False
    assert link_service.get_link(42).error_code == PLAYER_NOT_LINKED
