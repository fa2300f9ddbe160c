import pytest

MODEL_DIGEST = "sha256:b328f126e487d412563c86aa8793c5ddc1f516c6e76a3166d84ad54befc3f45d"
TEMPLATE_DIGEST = "sha256:6e4c38e1172f42fdbff13edf9a7a017679fb82b0fde415a3e8b3c31c6ed4a4e4"
CONFIG_DIGEST = "sha256:d18a5cc71b84bc4af394a31116bd3932b42241de70c77d2b76d69a314ec8aa12"


@pytest.fixture
def sample_manifest():
    return {
        "schemaVersion": 2,
        "mediaType": "application/vnd.docker.distribution.manifest.v2+json",
        "config": {
            "mediaType": "application/vnd.docker.container.image.v1+json",
            "digest": CONFIG_DIGEST,
            "size": 487,
        },
        "layers": [
            {
                "mediaType": "application/vnd.ollama.image.model",
                "digest": MODEL_DIGEST,
                "size": 1629509152,
            },
            {
                "mediaType": "application/vnd.ollama.image.template",
                "digest": TEMPLATE_DIGEST,
                "size": 358,
            },
        ],
    }


class StubRedis:
    """In-memory stand-in for the two redis commands telemetry uses."""

    def __init__(self, fail=False):
        self.fail = fail
        self.counters = {}
        self.lists = {}
        self.closed = False

    async def incr(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]

    async def lpush(self, key, value):
        if self.fail:
            raise ConnectionError("redis down")
        self.lists.setdefault(key, []).insert(0, value)
        return len(self.lists[key])

    async def aclose(self):
        self.closed = True
