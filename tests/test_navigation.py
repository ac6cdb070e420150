"""
Tests for the navigation state machine.
"""

import pytest

from willhaben_cli.commands import command_names
from willhaben_cli.models import HistoryItem, SearchResult, StarredItem
from willhaben_cli.navigation import (
    ALL_CATEGORIES,
    Advance,
    CloseDetail,
    DetailRequest,
    Key,
    KeyPress,
    NavigationController,
    RunCommand,
    SearchRequest,
    Section,
    SelectImage,
    ToggleStar,
    Unstar,
)

UP = KeyPress(Key.UP)
DOWN = KeyPress(Key.DOWN)
LEFT = KeyPress(Key.LEFT)
RIGHT = KeyPress(Key.RIGHT)
ENTER = KeyPress(Key.ENTER)
ESCAPE = KeyPress(Key.ESCAPE)
TAB = KeyPress(Key.TAB)
BACKSPACE = KeyPress(Key.BACKSPACE)


def type_text(controller, text):
    effects = []
    for char in text:
        effects += controller.handle_key(KeyPress.text(char))
    return effects


def search(controller, query, result):
    """Submit `query` from the search box and complete it with `result`."""
    controller.focus(Section.SEARCH)
    controller.state.query = ""
    type_text(controller, query)
    (request,) = controller.handle_key(ENTER)
    assert controller.search_completed(request, result)
    return request


@pytest.fixture
def controller():
    return NavigationController(command_names())


@pytest.fixture
def in_products(controller, result_with_categories):
    search(controller, "rad", result_with_categories)
    return controller


class TestSearchSection:
    def test_typing_and_backspace(self, controller):
        type_text(controller, "bikes")
        controller.handle_key(BACKSPACE)
        assert controller.state.query == "bike"

    def test_enter_issues_page_one_search(self, controller):
        type_text(controller, "  rennrad ")
        (request,) = controller.handle_key(ENTER)
        assert isinstance(request, SearchRequest)
        assert request.query == "rennrad"
        assert request.page == 1
        assert request.category_id is None
        assert request.advance is Advance.PRODUCTS
        assert controller.state.busy

    def test_enter_on_blank_query(self, controller):
        type_text(controller, "   ")
        assert controller.handle_key(ENTER) == []

    def test_completion_focuses_products(self, controller, result_with_categories):
        search(controller, "rad", result_with_categories)
        state = controller.state
        assert state.section is Section.PRODUCTS
        assert state.index(Section.PRODUCTS) == 0
        assert not state.busy

    def test_leaf_search_goes_to_products(self, controller):
        result = SearchResult(items=[], total_found=0, categories=[])
        search(controller, "bike", result)
        assert controller.state.section is Section.PRODUCTS
        assert controller.state.index(Section.PRODUCTS) == 0

    def test_down_prefers_categories(self, in_products):
        in_products.focus(Section.SEARCH)
        in_products.handle_key(DOWN)
        assert in_products.state.section is Section.CATEGORIES

    def test_down_to_products_without_categories(self, controller, leaf_result):
        search(controller, "rad", leaf_result)
        controller.focus(Section.SEARCH)
        controller.handle_key(DOWN)
        assert controller.state.section is Section.PRODUCTS

    def test_down_without_result(self, controller):
        controller.handle_key(DOWN)
        assert controller.state.section is Section.SEARCH

    def test_slash_text_runs_command(self, controller):
        type_text(controller, "/quit")
        assert controller.state.section is Section.SEARCH
        assert controller.handle_key(ENTER) == [RunCommand("/quit")]
        assert controller.state.query == ""

    def test_unknown_slash_text_is_ignored(self, controller):
        type_text(controller, "/nope")
        assert controller.handle_key(ENTER) == []


class TestCategories:
    def test_list_starts_with_all(self, in_products, categories):
        assert in_products.state.categories == [ALL_CATEGORIES, *categories]

    def test_enter_filters_to_products(self, in_products):
        state = in_products.state
        in_products.focus(Section.CATEGORIES)
        in_products.handle_key(DOWN)
        (request,) = in_products.handle_key(ENTER)
        assert request.category_id == "4390"
        assert request.category_name == "Sport"
        assert request.query == "rad"
        assert request.page == 1
        assert request.advance is Advance.PRODUCTS

        in_products.search_completed(request, SearchResult(items=state.items, categories=state.result.categories))
        assert state.section is Section.PRODUCTS
        assert state.category_id == "4390"

    def test_all_categories_clears_filter(self, in_products):
        in_products.focus(Section.CATEGORIES)
        (request,) = in_products.handle_key(ENTER)
        assert request.category_id is None
        assert request.category_name is None

    def test_right_drills_down_while_subcategories_exist(self, in_products, categories):
        state = in_products.state
        in_products.focus(Section.CATEGORIES)
        in_products.handle_key(DOWN)
        in_products.handle_key(DOWN)
        (request,) = in_products.handle_key(RIGHT)
        assert request.advance is Advance.DRILL

        in_products.search_completed(request, SearchResult(items=state.items, categories=categories[:1]))
        assert state.section is Section.CATEGORIES
        assert state.index(Section.CATEGORIES) == 0

    def test_right_into_leaf_goes_to_products(self, in_products, leaf_result):
        in_products.focus(Section.CATEGORIES)
        in_products.handle_key(DOWN)
        (request,) = in_products.handle_key(RIGHT)
        in_products.search_completed(request, leaf_result)
        assert in_products.state.section is Section.PRODUCTS
        assert in_products.state.index(Section.PRODUCTS) == 0

    def test_left_returns_to_search(self, in_products):
        in_products.focus(Section.CATEGORIES)
        in_products.handle_key(LEFT)
        assert in_products.state.section is Section.SEARCH


class TestProducts:
    def test_up_at_top_is_noop(self, in_products):
        in_products.handle_key(UP)
        assert in_products.state.index(Section.PRODUCTS) == 0

    def test_down_at_bottom_is_noop(self, in_products, listings):
        state = in_products.state
        state.selection[Section.PRODUCTS] = len(listings) - 1
        in_products.handle_key(DOWN)
        assert state.index(Section.PRODUCTS) == len(listings) - 1

    def test_left_to_categories_or_search(self, in_products, controller, leaf_result):
        in_products.handle_key(LEFT)
        assert in_products.state.section is Section.CATEGORIES

        search(controller, "rad", leaf_result)
        controller.handle_key(LEFT)
        assert controller.state.section is Section.SEARCH

    def test_open_detail(self, in_products):
        in_products.handle_key(DOWN)
        (request,) = in_products.handle_key(ENTER)
        assert isinstance(request, DetailRequest)
        assert request.listing_id == "1"
        state = in_products.state
        assert state.section is Section.DETAIL
        assert state.return_section is Section.PRODUCTS
        assert state.shown_listing.id == "1"
        assert state.busy

    def test_space_toggles_star(self, in_products):
        (effect,) = in_products.handle_key(KeyPress.text(" "))
        assert isinstance(effect, ToggleStar)
        assert effect.listing.id == "0"
        assert "0" in in_products.state.starred_ids

        in_products.handle_key(KeyPress.text(" "))
        assert "0" not in in_products.state.starred_ids

    def test_next_page(self, in_products):
        state = in_products.state
        in_products.handle_key(DOWN)
        (request,) = in_products.handle_key(KeyPress.text("n"))
        assert request.page == 2
        assert request.query == "rad"
        assert request.advance is Advance.STAY

        in_products.search_completed(request, state.result)
        assert state.page == 2
        assert state.section is Section.PRODUCTS
        assert state.index(Section.PRODUCTS) == 0

    def test_previous_page_never_below_one(self, in_products):
        assert in_products.handle_key(KeyPress.text("p")) == []

    def test_previous_page_keeps_category(self, in_products):
        state = in_products.state
        state.page = 3
        state.category_id = "4552"
        (request,) = in_products.handle_key(KeyPress.text("p"))
        assert request.page == 2
        assert request.category_id == "4552"


class TestWindowing:
    def test_first_window(self, in_products):
        assert in_products.state.window(Section.PRODUCTS) == (0, 10)

    def test_last_partial_window(self, in_products):
        in_products.state.selection[Section.PRODUCTS] = 23
        assert in_products.state.window(Section.PRODUCTS) == (20, 25)

    def test_window_boundary(self, in_products):
        in_products.state.selection[Section.PRODUCTS] = 10
        assert in_products.state.window(Section.PRODUCTS) == (10, 20)

    def test_empty(self, controller):
        assert controller.state.window(Section.HISTORY) == (0, 0)


class TestDetail:
    @pytest.fixture
    def in_detail(self, in_products, detail):
        for _ in range(3):
            in_products.handle_key(DOWN)
        (request,) = in_products.handle_key(RIGHT)
        effects = in_products.detail_loaded(request, detail)
        assert effects == [SelectImage(detail.images[0])]
        return in_products

    def test_left_returns(self, in_detail):
        assert in_detail.handle_key(LEFT) == [CloseDetail()]
        state = in_detail.state
        assert state.section is Section.PRODUCTS
        assert state.index(Section.PRODUCTS) == 3
        assert state.detail is None

    def test_escape_returns_instead_of_resetting(self, in_detail):
        assert in_detail.handle_key(ESCAPE) == [CloseDetail()]
        assert in_detail.state.section is Section.PRODUCTS
        assert in_detail.state.result is not None

    def test_image_selection(self, in_detail, detail):
        assert in_detail.handle_key(UP) == []
        assert in_detail.handle_key(DOWN) == [SelectImage(detail.images[1])]
        assert in_detail.handle_key(DOWN) == []

    def test_star_displayed_listing(self, in_detail):
        (effect,) = in_detail.handle_key(KeyPress.text(" "))
        assert effect.listing.id == "3"
        assert "3" in in_detail.state.starred_ids

    def test_slash_leaves_detail(self, in_detail):
        assert in_detail.handle_key(KeyPress.text("/")) == [CloseDetail()]
        assert in_detail.state.section is Section.COMMAND
        assert in_detail.state.command_input == "/"

    def test_late_detail_dropped(self, in_products, detail):
        (request,) = in_products.handle_key(ENTER)
        in_products.handle_key(LEFT)
        assert in_products.detail_loaded(request, detail) == []
        assert in_products.state.detail is None

    def test_superseded_detail_dropped(self, in_products, detail):
        (first,) = in_products.handle_key(ENTER)
        in_products.handle_key(LEFT)
        (second,) = in_products.handle_key(ENTER)
        assert in_products.detail_loaded(first, detail) == []
        assert in_products.detail_loaded(second, detail) != []

    def test_search_finishing_in_detail_keeps_focus(self, in_products, detail, leaf_result):
        state = in_products.state
        (page_request,) = in_products.handle_key(KeyPress.text("n"))
        (detail_request,) = in_products.handle_key(ENTER)
        in_products.detail_loaded(detail_request, detail)

        assert in_products.search_completed(page_request, leaf_result)
        assert state.section is Section.DETAIL
        assert state.detail is detail
        assert state.result is leaf_result
        assert state.page == 2

        assert in_products.handle_key(LEFT) == [CloseDetail()]
        assert state.section is Section.PRODUCTS
        assert state.index(Section.PRODUCTS) == 0

    def test_drill_finishing_in_detail_returns_to_categories(self, in_products, result_with_categories):
        state = in_products.state
        in_products.handle_key(LEFT)
        in_products.handle_key(DOWN)
        (drill,) = in_products.handle_key(RIGHT)
        in_products.focus(Section.PRODUCTS)
        in_products.handle_key(ENTER)

        in_products.search_completed(drill, result_with_categories)
        assert state.section is Section.DETAIL
        in_products.handle_key(LEFT)
        assert state.section is Section.CATEGORIES

    def test_detail_arrives_after_search_in_detail(self, in_products, detail, leaf_result):
        state = in_products.state
        (page_request,) = in_products.handle_key(KeyPress.text("n"))
        (detail_request,) = in_products.handle_key(ENTER)

        in_products.search_completed(page_request, leaf_result)
        assert state.busy

        assert in_products.detail_loaded(detail_request, detail) == [SelectImage(detail.images[0])]
        assert not state.busy

    def test_latest_detail_settles_when_focus_moved(self, in_products, detail):
        (request,) = in_products.handle_key(ENTER)
        in_products.focus(Section.SEARCH)

        assert in_products.detail_loaded(request, detail) == []
        assert not in_products.state.loading_detail
        assert in_products.state.detail is None

    def test_failed_detail(self, in_products):
        (request,) = in_products.handle_key(ENTER)
        assert in_products.detail_failed(request, "Request failed with status: 500")
        assert in_products.state.error == "Request failed with status: 500"
        assert not in_products.state.busy


class TestStaleSearches:
    def test_only_latest_response_applies(self, controller, result_with_categories, leaf_result):
        type_text(controller, "rad")
        (first,) = controller.handle_key(ENTER)
        (second,) = controller.handle_key(ENTER)

        assert not controller.search_completed(first, result_with_categories)
        assert controller.state.result is None
        assert controller.state.busy

        assert controller.search_completed(second, leaf_result)
        assert controller.state.result is leaf_result

    def test_stale_failure_ignored(self, controller):
        type_text(controller, "rad")
        (first,) = controller.handle_key(ENTER)
        controller.handle_key(ENTER)
        assert not controller.search_failed(first, "boom")
        assert controller.state.error is None

    def test_escape_drops_in_flight_search(self, controller, leaf_result):
        type_text(controller, "rad")
        (request,) = controller.handle_key(ENTER)
        controller.handle_key(ESCAPE)
        assert not controller.search_completed(request, leaf_result)
        assert controller.state.result is None


class TestGlobalKeys:
    def test_escape_resets_search(self, in_products):
        state = in_products.state
        state.page = 4
        state.category_id = "4552"
        in_products.handle_key(ESCAPE)
        assert state.section is Section.SEARCH
        assert state.result is None
        assert state.query == ""
        assert state.category_id is None
        assert state.page == 1

    def test_slash_opens_command(self, in_products):
        assert in_products.handle_key(KeyPress.text("/")) == []
        assert in_products.state.section is Section.COMMAND
        assert in_products.state.command_input == "/"

    def test_slash_in_search_is_text(self, controller):
        controller.handle_key(KeyPress.text("/"))
        assert controller.state.section is Section.SEARCH
        assert controller.state.query == "/"


class TestCommandSection:
    @pytest.fixture
    def in_command(self, controller):
        controller.focus(Section.PRODUCTS)
        controller.handle_key(KeyPress.text("/"))
        return controller

    def test_tab_completes_first_match(self, in_command):
        type_text(in_command, "st")
        in_command.handle_key(TAB)
        assert in_command.state.command_input == "/starred"

    def test_tab_uses_registry_order(self, in_command):
        type_text(in_command, "s")
        in_command.handle_key(TAB)
        assert in_command.state.command_input == "/search"

    def test_tab_without_match(self, in_command):
        type_text(in_command, "zz")
        in_command.handle_key(TAB)
        assert in_command.state.command_input == "/zz"

    def test_enter_runs_exact_name(self, in_command):
        type_text(in_command, "history")
        assert in_command.handle_key(ENTER) == [RunCommand("/history")]

    def test_unknown_is_silent(self, in_command):
        type_text(in_command, "hist")
        assert in_command.handle_key(ENTER) == []
        assert in_command.state.section is Section.COMMAND

    def test_escape_discards(self, in_command):
        type_text(in_command, "hist")
        assert in_command.handle_key(ESCAPE) == []
        assert in_command.state.section is Section.SEARCH
        assert in_command.state.command_input == ""


class TestHistoryAndStarred:
    def test_history_enter_reruns(self, controller):
        controller.show_history([
            HistoryItem(id=2, query="sofa"),
            HistoryItem(id=1, query="rennrad", category_id="4552", category_name="Fahrräder"),
        ])
        assert controller.state.section is Section.HISTORY
        controller.handle_key(DOWN)
        (request,) = controller.handle_key(ENTER)
        assert request.query == "rennrad"
        assert request.category_id == "4552"
        assert request.page == 1
        assert controller.state.query == "rennrad"

    def test_unstar_last_item_reclamps(self, controller):
        controller.show_starred([StarredItem(id=str(i)) for i in range(3)])
        controller.handle_key(DOWN)
        controller.handle_key(DOWN)
        assert controller.handle_key(KeyPress.text("u")) == [Unstar("2")]

        state = controller.state
        assert [i.id for i in state.starred_items] == ["0", "1"]
        assert state.index(Section.STARRED) == 1
        assert state.starred_ids == {"0", "1"}

    def test_unstar_only_item(self, controller):
        controller.show_starred([StarredItem(id="7")])
        assert controller.handle_key(KeyPress.text(" ")) == [Unstar("7")]
        assert controller.state.index(Section.STARRED) == 0
        assert controller.handle_key(KeyPress.text(" ")) == []

    def test_starred_opens_detail(self, controller):
        controller.show_starred([StarredItem(id="7")])
        (request,) = controller.handle_key(ENTER)
        assert request.listing_id == "7"
        assert controller.state.return_section is Section.STARRED
        controller.handle_key(LEFT)
        assert controller.state.section is Section.STARRED
