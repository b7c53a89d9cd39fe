from httpx import ASGITransport, AsyncClient

from gacp.main import app


def get_async_client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


# Actor headers as forwarded by the gateway.
FARMER = {"X-Actor-Role": "farmer"}
REVIEWER = {"X-Actor-Role": "reviewer"}
AUDITOR = {"X-Actor-Role": "auditor"}
ADMIN = {"X-Actor-Role": "admin"}
