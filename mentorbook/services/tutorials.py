"""Tutorial lookup."""

from mentorbook.schemas.booking_schema import Tutorial
from mentorbook.services.client import ApiClient, ApiNotFoundError, parse_model


class TutorialService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_tutorial(self, tutorial_id: int) -> Tutorial:
        data = await self._client.get(f"/api/tutorials/{tutorial_id}")
        if not data:
            raise ApiNotFoundError(f"Tutorial {tutorial_id} not found.")
        return parse_model(Tutorial, data, "tutorial")
