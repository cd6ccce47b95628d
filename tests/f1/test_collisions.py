"""Tests for collision detection and resolution."""

import pytest

from questionbank.core.collection import Collection, Item
from questionbank.core.collisions import (
    Applied,
    Cancelled,
    CollisionError,
    Conflict,
    PageConflict,
    RenameExhaustedError,
    Resolution,
    delete_item,
    delete_page,
    propose_change,
    propose_page_move,
    remove_duplicates,
    resolve,
    resolve_page_move,
    unique_label,
)


def assert_unique(collection):
    identities = collection.identities()
    assert len(identities) == len(set(identities))


class TestProposeChange:
    """Tests for single-item edits."""

    def test_free_identity_applies_directly(self, two_item_page):
        """A change to an unused identity is applied at once."""
        result = propose_change(two_item_page, 1, new_label="3")

        assert isinstance(result, Applied)
        assert result.via == "direct"
        assert result.collection.identities() == ["1_1", "1_3"]
        assert result.relocated == {"1_2": "1_3"}

    def test_input_collection_is_not_mutated(self, two_item_page):
        """Proposals never edit the caller's collection."""
        propose_change(two_item_page, 1, new_page=2)
        assert two_item_page.identities() == ["1_1", "1_2"]

    def test_same_identity_is_not_a_conflict(self, two_item_page):
        """Re-submitting the current values applies as a no-op."""
        result = propose_change(two_item_page, 0, new_page=1, new_label="1")
        assert isinstance(result, Applied)
        assert result.relocated == {}

    def test_collision_returns_conflict(self, two_item_page):
        """Moving onto an occupied identity yields a Conflict."""
        result = propose_change(two_item_page, 1, new_page=1, new_label="1")

        assert isinstance(result, Conflict)
        assert result.conflicting_identity == "1_1"
        assert result.conflicting_index == 0
        assert (result.page, result.label) == (1, "1")

    def test_invalid_index_raises(self, two_item_page):
        with pytest.raises(CollisionError):
            propose_change(two_item_page, 5, new_label="9")

    def test_invalid_page_raises(self, two_item_page):
        with pytest.raises(CollisionError):
            propose_change(two_item_page, 0, new_page=0)


class TestResolve:
    """Tests for rename / overwrite / cancel."""

    def test_rename_suffixes_moving_item(self, two_item_page):
        """Rename keeps both items: 1_1 and 1_1(1)."""
        conflict = propose_change(two_item_page, 1, new_page=1, new_label="1")
        result = resolve(two_item_page, conflict, Resolution.RENAME)

        assert isinstance(result, Applied)
        assert result.via == "rename"
        assert result.collection.identities() == ["1_1", "1_1(1)"]
        assert result.collection[0] == two_item_page[0]

    def test_rename_skips_taken_suffixes_anywhere(self, make_collection):
        """Suffixes already used are skipped."""
        collection = make_collection((1, "1"), (1, "1(1)"), (2, "1"))
        conflict = propose_change(collection, 2, new_page=1)
        result = resolve(collection, conflict, "rename")

        assert result.collection[2].identity == "1_1(2)"
        assert_unique(result.collection)

    def test_overwrite_removes_previous_holder(self, make_collection):
        """Overwrite drops the item that held the identity."""
        collection = make_collection((1, "1"), (1, "2"), (1, "3"))
        conflict = propose_change(collection, 2, new_label="1")
        result = resolve(collection, conflict, Resolution.OVERWRITE)

        assert result.via == "overwrite"
        assert result.collection.identities() == ["1_2", "1_1"]
        assert result.removed == ["1_1"]
        assert result.item_index == 1
        assert result.collection[1].question == "Question 1-3"

    def test_cancel_leaves_collection(self, two_item_page):
        """Cancel discards the proposed edit."""
        conflict = propose_change(two_item_page, 1, new_label="1")
        result = resolve(two_item_page, conflict, Resolution.CANCEL)

        assert isinstance(result, Cancelled)
        assert result.collection.identities() == ["1_1", "1_2"]

    def test_stale_conflict_is_applied_directly(self, make_collection):
        """A conflict whose holder is gone is applied without suffix."""
        collection = make_collection((1, "1"), (1, "2"))
        conflict = propose_change(collection, 1, new_label="1")
        without_holder = make_collection((9, "9"), (1, "2"))
        result = resolve(without_holder, conflict, Resolution.RENAME)

        assert result.via == "direct"
        assert result.collection.identities() == ["9_9", "1_1"]

    def test_rename_bound_returns_unresolvable_conflict(self, make_collection):
        """Exhausting the suffix bound leaves only overwrite or cancel."""
        collection = make_collection((1, "1"), (1, "1(1)"), (1, "1(2)"), (2, "1"))
        conflict = propose_change(collection, 3, new_page=1)
        result = resolve(collection, conflict, Resolution.RENAME, max_rename_attempts=2)

        assert isinstance(result, Conflict)
        assert result.rename_available is False
        assert result.conflicting_index == 0
        assert result.candidate_identity == "1_1"

        result = resolve(collection, result, Resolution.OVERWRITE)
        assert result.collection.identities() == ["1_1(1)", "1_1(2)", "1_1"]


class TestUniqueLabel:
    """Tests for the suffix loop."""

    def test_free_label_is_kept(self):
        assert unique_label(1, "2", {"1_1"}) == "2"

    def test_uses_config_bound_by_default(self):
        taken = {"1_1"} | {f"1_1({n})" for n in range(1, 1001)}
        with pytest.raises(RenameExhaustedError):
            unique_label(1, "1", taken)


class TestPageMove:
    """Tests for whole-page moves."""

    def test_move_to_empty_page(self, two_pages):
        """Moving onto an empty page applies directly and carries the topic."""
        result = propose_page_move(two_pages, 4, 7)

        assert isinstance(result, Applied)
        assert result.collection.identities() == ["3_1", "3_2", "3_3", "7_1", "7_2"]
        assert result.collection.topics == {3: "Present perfect", 7: "Past simple"}
        assert result.relocated == {"4_1": "7_1", "4_2": "7_2"}

    def test_same_page_is_noop(self, two_pages):
        result = propose_page_move(two_pages, 3, 3)
        assert isinstance(result, Applied)
        assert result.collection.identities() == two_pages.identities()

    def test_colliding_labels_return_page_conflict(self, two_pages):
        """Labels present on both pages are reported."""
        result = propose_page_move(two_pages, 4, 3)

        assert isinstance(result, PageConflict)
        assert result.colliding_labels == ["1", "2"]

    def test_rename_assigns_independent_suffixes(self, two_pages):
        """Every colliding moved item gets its own free suffix."""
        conflict = propose_page_move(two_pages, 4, 3)
        result = resolve_page_move(two_pages, conflict, Resolution.RENAME)

        assert result.via == "rename"
        assert result.collection.identities() == ["3_1", "3_2", "3_3", "3_1(1)", "3_2(1)"]
        assert result.collection.topics == {3: "Present perfect"}
        assert_unique(result.collection)

    def test_rename_avoids_labels_kept_by_other_moved_items(self, make_collection):
        """A suffix never lands on a label another moved item keeps."""
        collection = make_collection((1, "1"), (2, "1"), (2, "1(1)"))
        conflict = propose_page_move(collection, 2, 1)
        result = resolve_page_move(collection, conflict, "rename")

        assert result.collection.identities() == ["1_1", "1_1(2)", "1_1(1)"]
        assert_unique(result.collection)

    def test_overwrite_drops_target_collisions(self, two_pages):
        """Overwrite removes target items sharing a moved label."""
        conflict = propose_page_move(two_pages, 4, 3)
        result = resolve_page_move(two_pages, conflict, Resolution.OVERWRITE)

        assert result.collection.identities() == ["3_3", "3_1", "3_2"]
        assert sorted(result.removed) == ["3_1", "3_2"]
        assert result.collection[1].question == "Question 4-1"

    def test_rename_bound_returns_page_conflict(self, make_collection):
        """A page move that runs out of suffixes is not applied."""
        collection = make_collection((1, "1"), (1, "1(1)"), (2, "1"))
        conflict = propose_page_move(collection, 2, 1)
        result = resolve_page_move(collection, conflict, Resolution.RENAME, max_rename_attempts=1)

        assert isinstance(result, PageConflict)
        assert result.rename_available is False
        assert result.colliding_labels == ["1"]
        assert collection.identities() == ["1_1", "1_1(1)", "2_1"]

    def test_cancel_page_move(self, two_pages):
        conflict = propose_page_move(two_pages, 4, 3)
        result = resolve_page_move(two_pages, conflict, Resolution.CANCEL)
        assert isinstance(result, Cancelled)
        assert result.collection is two_pages


class TestEditorHelpers:
    """Tests for delete and duplicate removal."""

    def test_delete_item(self, two_item_page):
        result = delete_item(two_item_page, 0)
        assert result.identities() == ["1_2"]
        assert two_item_page.identities() == ["1_1", "1_2"]

    def test_delete_page_removes_items_and_topic(self, two_pages):
        result = delete_page(two_pages, 3)
        assert result.identities() == ["4_1", "4_2"]
        assert 3 not in result.topics

    def test_remove_duplicates_by_content(self):
        """Same type, question and answer on any page is a duplicate."""
        collection = Collection(
            items=[
                Item(page=1, label="1", question="Fill in: He ___ gone.", answer="has"),
                Item(page=2, label="1", question="  fill in: he ___ gone. ", answer="HAS"),
                Item(page=2, label="2", question="Fill in: He ___ gone.", answer="had"),
            ]
        )
        result, removed = remove_duplicates(collection)

        assert removed == 1
        assert result.identities() == ["1_1", "2_2"]


class TestUniquenessInvariant:
    """Any sequence of edits keeps identities unique."""

    def test_sequence_of_edits(self, two_pages):
        collection = two_pages
        edits = [
            (0, 4, "1"),
            (1, 4, "1"),
            (2, 3, "1"),
            (3, None, "2"),
        ]
        for index, page, label in edits:
            result = propose_change(collection, index, new_page=page, new_label=label)
            if isinstance(result, Conflict):
                result = resolve(collection, result, Resolution.RENAME)
            collection = result.collection
            assert_unique(collection)

        conflict = propose_page_move(collection, 4, 3)
        if isinstance(conflict, PageConflict):
            collection = resolve_page_move(collection, conflict, Resolution.RENAME).collection
        assert_unique(collection)
