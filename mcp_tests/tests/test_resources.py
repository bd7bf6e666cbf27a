import config
from resources.cache_policies import register_resources, render_policies


def test_render_policies_lists_every_cache(monkeypatch):
    monkeypatch.setattr(config, "USER_CACHE_TTL", 123.0)

    text = render_policies()

    for name in ("users", "matches", "stats", "display-names"):
        assert name in text
    assert "123" in text
    assert "7.0 days" in text


def test_register_resources(dummy_mcp):
    register_resources(dummy_mcp)

    assert dummy_mcp.resources["cache://policies"]() == render_policies()
