"""
Error codes for rejected votes, links and gateway-backed commands.

Usage:
    from services.error_codes import MATCH_NOT_FOUND
    from services.result import Result

    if record is None:
        return Result.fail("match not found", code=MATCH_NOT_FOUND)
"""

# General errors
VALIDATION_ERROR = "validation_error"
EXTERNAL_API_ERROR = "external_api_error"

# Match / vote errors
MATCH_NOT_FOUND = "match_not_found"
NOT_A_PARTICIPANT = "not_a_participant"

# Player link errors
PLAYER_NOT_LINKED = "player_not_linked"
PLAYER_NOT_FOUND = "player_not_found"
