import pytest

from authcode.models.config import ProviderConfig
from authcode.primitives.entropy import set_default_entropy_source


class CyclingEntropySource:
    """Deterministic source yielding 0, 1, ..., 255, 0, 1, ... forever."""

    def __init__(self):
        self.position = 0
        self.calls: list[int] = []

    def draw(self, n: int) -> bytes:
        self.calls.append(n)
        data = bytes((self.position + i) % 256 for i in range(n))
        self.position = (self.position + n) % 256
        return data


class ScriptedEntropySource:
    """Returns scripted bytes first, then zeros."""

    def __init__(self, script: bytes):
        self.script = script

    def draw(self, n: int) -> bytes:
        data, self.script = self.script[:n], self.script[n:]
        return data + bytes(n - len(data))


@pytest.fixture
def cycling_entropy() -> CyclingEntropySource:
    return CyclingEntropySource()


@pytest.fixture
def scripted_entropy():
    return ScriptedEntropySource


@pytest.fixture(autouse=True)
def reset_default_entropy():
    yield
    set_default_entropy_source(None)


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(
        provider="example",
        client_id="client123",
        redirect_uri="https://myapp.com/callback",
        scopes=["openid", "email"],
        auth_endpoint="https://auth.example.com/authorize",
        token_endpoint="https://auth.example.com/token",
        user_info_endpoint="https://api.example.com/userinfo",
    )


@pytest.fixture
def confidential_config(provider_config: ProviderConfig) -> ProviderConfig:
    return provider_config.model_copy(update={"client_secret": "s3cret/+"})
