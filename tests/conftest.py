"""
willhaben-cli - Test Configuration

Shared fixtures for all tests.
"""

import io
import json

import pytest
from PIL import Image

from willhaben_cli.models import CategorySuggestion, Listing, ListingDetail, SearchResult


# ═══════════════════════════════════════════════════════════════════════════
# Environment
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def willhaben_home(tmp_path, monkeypatch):
    """Point config, database and logs at a temp dir; drop env overrides."""
    home = tmp_path / "willhaben-home"
    monkeypatch.setenv("WILLHABEN_HOME", str(home))
    for key in ("WILLHABEN_COOKIES", "WILLHABEN_ASCII_WIDTH", "WILLHABEN_ASCII_CONTRAST", "WILLHABEN_LOCATION"):
        monkeypatch.delenv(key, raising=False)
    return home


# ═══════════════════════════════════════════════════════════════════════════
# Payload builders
# ═══════════════════════════════════════════════════════════════════════════


def make_advert(ad_id, title="Rennrad", price="100", **extra_attributes):
    attributes = [{"name": "PRICE", "values": [price]}] if price is not None else []
    attributes += [
        {"name": "POSTCODE", "values": ["1010"]},
        {"name": "LOCATION", "values": ["Wien"]},
    ]
    for name, value in extra_attributes.items():
        attributes.append({"name": name, "values": value if isinstance(value, list) else [value]})
    return {
        "id": ad_id,
        "description": title,
        "attributes": {"attribute": attributes},
        "advertImageList": {"advertImage": [{"mainImageUrl": f"https://cache.willhaben.at/{ad_id}.jpg"}]},
    }


def make_search_document(adverts, navigator_groups=None, rows_found=None, suggestions=None):
    search_result = {"advertSummaryList": {"advertSummary": adverts}}
    if navigator_groups is not None:
        search_result["navigatorGroups"] = navigator_groups
    if rows_found is not None:
        search_result["rowsFound"] = rows_found
    page_props = {"searchResult": search_result}
    if suggestions is not None:
        page_props["categorySuggestions"] = suggestions
    return {"props": {"pageProps": page_props}}


def next_data_page(document):
    """HTML page carrying `document` the way the site embeds it."""
    return (
        "<html><head><title>willhaben</title></head><body>"
        f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(document)}</script>'
        "</body></html>"
    )


def make_png(width=40, height=20, color=(128, 128, 128)):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def search_document():
    """Search page with three adverts and a nested category group."""
    return make_search_document(
        [make_advert(1, "Rennrad Carbon", "1200"), make_advert(2, "Kinderrad", "80"), make_advert(3, "Citybike", "250")],
        navigator_groups=[
            {"id": "price", "label": "Preis"},
            {
                "id": "outer",
                "label": "Weitere",
                "navigatorList": [
                    {
                        "id": "attribute_tree",
                        "label": "Kategorie",
                        "groupedPossibleValues": [
                            {
                                "possibleValues": [
                                    {
                                        "label": "Fahrräder",
                                        "hits": 40,
                                        "urlParamRepresentationForValue": [
                                            {"urlParameterName": "ATTRIBUTE_TREE", "value": "4552"}
                                        ],
                                    },
                                    {
                                        "label": "Sport",
                                        "hits": 120,
                                        "urlParamRepresentationForValue": [
                                            {"urlParameterName": "ATTRIBUTE_TREE", "value": "4390"}
                                        ],
                                    },
                                ]
                            }
                        ],
                    }
                ],
            },
        ],
        rows_found=57,
    )


@pytest.fixture
def detail_document():
    ad = make_advert(
        42,
        "Rennrad Carbon",
        "1200",
        CONDITION="Gebraucht",
        PHONE="+43 660 1234567",
        EQUIPMENT=["Shimano 105", "Carbon-Gabel"],
    )
    ad["body"] = "Top gepflegt, wenig gefahren."
    ad["advertImageList"] = {
        "advertImage": [
            {"mainImageUrl": "https://cache.willhaben.at/42-a.jpg"},
            {"mainImageUrl": "https://cache.willhaben.at/42-b.jpg"},
        ]
    }
    return {"props": {"pageProps": {"advertDetails": ad}}}


@pytest.fixture
def listings():
    """25 listings, enough for three windows."""
    return [Listing(id=str(i), title=f"Listing {i}", price=float(i), price_text=f"€ {i},00") for i in range(25)]


@pytest.fixture
def categories():
    return [
        CategorySuggestion(id="4390", name="Sport", count=120),
        CategorySuggestion(id="4552", name="Fahrräder", count=40),
    ]


@pytest.fixture
def result_with_categories(listings, categories):
    return SearchResult(items=listings, total_found=len(listings), categories=categories)


@pytest.fixture
def leaf_result(listings):
    """Result without sub-categories."""
    return SearchResult(items=listings[:5], total_found=5, categories=[])


@pytest.fixture
def detail():
    return ListingDetail(
        id="3",
        title="Listing 3",
        price=3.0,
        price_text="€ 3,00",
        images=["https://cache.willhaben.at/3-a.jpg", "https://cache.willhaben.at/3-b.jpg"],
    )


@pytest.fixture
def png_bytes():
    return make_png()
