import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
import responses

from bato_export.client import BatoClient
from bato_export.models import CollectionList

BASE_URL = "http://bato.test"
API_URL = BASE_URL + "/ap2/"


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    return Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(scope="session")
def load_fixture(fixtures_dir: Path):
    def _load(name: str) -> dict:
        path = fixtures_dir / "bato" / name
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    return _load


@pytest.fixture(scope="session")
def list_pages(load_fixture) -> list:
    return [load_fixture("lists_page1.json"), load_fixture("lists_page2.json")]


@pytest.fixture(scope="session")
def history_pages(load_fixture) -> list:
    return [load_fixture("history_page1.json"), load_fixture("history_page2.json")]


@pytest.fixture
def sample_lists(list_pages) -> list:
    """Lists as the fetcher would return them for the fixture pages, without history."""
    out = []
    for page in list_pages:
        for item in page["data"]["get_user_mylistList"]["items"]:
            out.append(CollectionList.from_item(item))
    return out


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def responses_mock():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def client() -> BatoClient:
    return BatoClient(base_url=BASE_URL, cookie="session=abc")
