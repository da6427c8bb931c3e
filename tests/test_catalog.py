import asyncio

import orjson
import pytest
import requests

from blamegame.models.content import Category, CustomCategory, CustomPrompt, Prompt
from blamegame.services.catalog import load_catalog
from blamegame.services.content_provider import (
    CustomCategoryProvider,
    FileContentProvider,
    HttpContentProvider,
    StaticContentProvider,
    parse_categories,
    parse_prompts,
)
from blamegame.services.errors import ContentUnavailable
from blamegame.services.kv_store import InMemoryStore


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(data))


def test_parse_categories_reads_language_keys():
    categories = parse_categories(
        [
            {"id": "party", "emoji": "🎉", "en": "Party", "de": "Feier"},
            {"id": "party", "en": "Duplicate"},
            {"emoji": "x"},
        ]
    )

    assert len(categories) == 1
    assert categories[0].display_name == {"en": "Party", "de": "Feier"}
    assert categories[0].name_for("fr") == "Party"
    assert categories[0].emoji == "🎉"


def test_parse_prompts_skips_blank_texts():
    prompts = parse_prompts(
        [{"questionId": "a", "text": "Who?"}, {"text": "   "}, {"text": "Who else?"}],
        "party",
    )

    assert [p.id for p in prompts] == ["a", "party-2"]
    assert all(p.category_id == "party" for p in prompts)

    with pytest.raises(ContentUnavailable):
        parse_prompts({"not": "a list"}, "party")


def test_file_provider_falls_back_to_english(tmp_path):
    _write(tmp_path / "questions" / "categories.json", [{"id": "work", "en": "Work"}])
    _write(tmp_path / "questions" / "en" / "work.json", [{"questionId": "w1", "text": "Who is late?"}])
    provider = FileContentProvider(tmp_path)

    prompts = asyncio.run(provider.list_prompts("work", "de"))

    assert [p.text for p in prompts] == ["Who is late?"]


def test_file_provider_missing_everywhere(tmp_path):
    _write(tmp_path / "questions" / "categories.json", [{"id": "ghost", "en": "Ghost"}])
    provider = FileContentProvider(tmp_path)

    with pytest.raises(ContentUnavailable):
        asyncio.run(provider.list_prompts("ghost", "fr"))

    catalog = asyncio.run(load_catalog(provider, "fr"))
    assert catalog.is_empty()


def test_bundled_content_loads_in_german():
    catalog = asyncio.run(load_catalog(FileContentProvider(), "de"))

    assert set(catalog.eligible_category_ids()) == {"party", "travel", "food", "work"}
    # work n'existe qu'en anglais
    assert catalog.prompts_for("work")[0].text.startswith("Who")
    assert catalog.category("travel").name_for("de") == "Reisen"


def test_failed_category_is_excluded():
    categories = [Category(id="a"), Category(id="b")]
    prompts = {"de": {cid: [Prompt(id="1", category_id=cid, text=f"{cid}?")] for cid in ("a", "b")}}
    provider = StaticContentProvider(categories, prompts, failing=("b",))

    catalog = asyncio.run(load_catalog(provider, "de"))

    assert catalog.eligible_category_ids() == ["a"]
    assert catalog.category("b") is None
    assert catalog.excluded == ["b"]


def test_duplicate_prompt_ids_are_collapsed():
    prompts = {"de": {"a": [Prompt(id="1", category_id="a", text="x"), Prompt(id="1", category_id="a", text="y")]}}
    catalog = asyncio.run(load_catalog(StaticContentProvider([Category(id="a")], prompts), "de"))

    assert [p.text for p in catalog.prompts_for("a")] == ["x"]
    assert catalog.category_summaries()[0].prompt_count == 1


def test_custom_categories_are_listed_after_builtin():
    store = InMemoryStore()
    inner = StaticContentProvider([Category(id="a")], {"en": {"a": [Prompt(id="1", category_id="a", text="?")]}})
    provider = CustomCategoryProvider(inner, store)
    provider.save_custom_category(
        CustomCategory(id="mine", name={"en": "Mine"}, prompts=[CustomPrompt(id="m1", text={"de": "Wer?"})])
    )

    categories = asyncio.run(provider.list_categories("en"))
    prompts = asyncio.run(provider.list_prompts("mine", "en"))

    assert [c.id for c in categories] == ["a", "mine"]
    assert [p.text for p in prompts] == ["Wer?"]
    assert provider.delete_custom_category("mine") is True
    assert provider.delete_custom_category("mine") is False


class _FakeResponse:
    def __init__(self, status_code, payload=None, raw=None):
        self.status_code = status_code
        self.content = raw if raw is not None else orjson.dumps(payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class _FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append(url)
        return self.routes.get(url, _FakeResponse(404, []))


def test_http_provider_language_cascade():
    base = "https://cdn.test/content"
    session = _FakeSession(
        {
            f"{base}/questions/categories.json": _FakeResponse(200, [{"id": "party", "en": "Party"}]),
            f"{base}/questions/en/party.json": _FakeResponse(200, [{"questionId": "p1", "text": "Who?"}]),
        }
    )
    provider = HttpContentProvider(base + "/", session=session, timeout=1)

    catalog = asyncio.run(load_catalog(provider, "es"))

    assert catalog.eligible_category_ids() == ["party"]
    assert session.calls[-2:] == [f"{base}/questions/es/party.json", f"{base}/questions/en/party.json"]


def test_http_provider_invalid_payload():
    base = "https://cdn.test"
    session = _FakeSession({f"{base}/questions/categories.json": _FakeResponse(200, raw=b"<html>")})
    provider = HttpContentProvider(base, session=session)

    with pytest.raises(ContentUnavailable):
        asyncio.run(provider.list_categories("en"))
