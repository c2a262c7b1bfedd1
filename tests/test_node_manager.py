"""Unit tests for NodeManager."""

from unittest.mock import Mock, call

import pytest

from pyclouddrive.api import CloudDriveClient
from pyclouddrive.exceptions import CloudDriveRequestError
from pyclouddrive.models import NodeKind, NodeListing, RemoteNode
from pyclouddrive.node_manager import FOLDER_FILTER, NodeManager


def folder(node_id, name, parent="root"):
    return RemoteNode(
        id=node_id, name=name, kind=NodeKind.FOLDER, parent_ids=frozenset({parent})
    )


def file_node(node_id, name, md5=None):
    return RemoteNode(id=node_id, name=name, kind=NodeKind.FILE, md5=md5)


ROOT = folder("root", "", parent="")


class TestGetAllChildren:
    """Tests for get_all_children."""

    def test_single_page(self):
        """Test listing that fits in one page."""
        client = Mock(spec=CloudDriveClient)
        client.get_children.return_value = NodeListing(
            nodes=[file_node("1", "a.jpg"), folder("2", "sub")]
        )
        manager = NodeManager(client)

        nodes = manager.get_all_children("root")

        assert [n.name for n in nodes] == ["a.jpg", "sub"]
        client.get_children.assert_called_once_with(
            "root", filters=None, start_token=None
        )

    def test_multiple_pages_follow_continuation_tokens(self):
        """Test that N children over K pages take K-1 continuation requests."""
        client = Mock(spec=CloudDriveClient)
        client.get_children.side_effect = [
            NodeListing([file_node("1", "a"), file_node("2", "b")], "t1"),
            NodeListing([file_node("3", "c"), file_node("4", "d")], "t2"),
            NodeListing([file_node("5", "e")], None),
        ]
        manager = NodeManager(client)

        nodes = manager.get_all_children("root", filters=FOLDER_FILTER)

        assert [n.id for n in nodes] == ["1", "2", "3", "4", "5"]
        assert client.get_children.call_args_list == [
            call("root", filters=FOLDER_FILTER, start_token=None),
            call("root", filters=FOLDER_FILTER, start_token="t1"),
            call("root", filters=FOLDER_FILTER, start_token="t2"),
        ]

    def test_empty_folder(self):
        """Test listing an empty folder."""
        client = Mock(spec=CloudDriveClient)
        client.get_children.return_value = NodeListing(nodes=[])

        assert NodeManager(client).get_all_children("root") == []

    def test_cache(self):
        """Test that cached listings are reused when requested."""
        client = Mock(spec=CloudDriveClient)
        client.get_children.return_value = NodeListing([file_node("1", "a")])
        manager = NodeManager(client)

        manager.get_all_children("root", use_cache=True)
        manager.get_all_children("root", use_cache=True)
        manager.get_all_children("root")

        assert client.get_children.call_count == 2

    def test_errors_propagate(self):
        """Test that a failing page is not turned into a partial result."""
        client = Mock(spec=CloudDriveClient)
        client.get_children.side_effect = [
            NodeListing([file_node("1", "a")], "t1"),
            CloudDriveRequestError("boom", 500),
        ]

        with pytest.raises(CloudDriveRequestError):
            NodeManager(client).get_all_children("root")


class TestResolvePath:
    """Tests for resolve_path and find_path."""

    @pytest.fixture
    def client(self):
        client = Mock(spec=CloudDriveClient)
        created = iter(range(100))

        def create_folder(name, parent_id):
            return folder(f"new-{next(created)}", name, parent_id)

        client.create_folder.side_effect = create_folder
        client.get_children.return_value = NodeListing(nodes=[])
        return client

    def test_creates_each_missing_segment_in_order(self, client):
        """Test one creation per segment without re-listing created folders."""
        manager = NodeManager(client)

        node = manager.resolve_path(["a", "b", "c"], ROOT)

        assert client.create_folder.call_args_list == [
            call("a", "root"),
            call("b", "new-0"),
            call("c", "new-1"),
        ]
        assert client.get_children.call_count == 1
        assert node.id == "new-2"
        assert node.name == "c"

    def test_descends_into_existing_folders(self, client):
        """Test that existing folders are found by exact name."""
        listings = {
            "root": [file_node("f", "a"), folder("A", "a"), folder("X", "ab")],
            "A": [folder("B", "b", "A")],
        }
        client.get_children.side_effect = lambda node_id, **kw: NodeListing(
            listings.get(node_id, [])
        )
        manager = NodeManager(client)

        node = manager.resolve_path(["a", "b"], ROOT)

        assert node.id == "B"
        client.create_folder.assert_not_called()
        for c in client.get_children.call_args_list:
            assert c.kwargs["filters"] == FOLDER_FILTER

    def test_partial_path(self, client):
        """Test that only the missing tail of the path is created."""
        listings = {"root": [folder("A", "a")]}
        client.get_children.side_effect = lambda node_id, **kw: NodeListing(
            listings.get(node_id, [])
        )
        manager = NodeManager(client)

        node = manager.resolve_path(["a", "b", "c"], ROOT)

        assert [c.args[0] for c in client.get_children.call_args_list] == [
            "root",
            "A",
        ]
        assert client.create_folder.call_args_list == [
            call("b", "A"),
            call("c", "new-0"),
        ]
        assert node.name == "c"

    def test_first_match_wins(self, client):
        """Test that the first folder with a matching name is used."""
        client.get_children.return_value = NodeListing(
            [folder("first", "a"), folder("second", "a")]
        )

        node = NodeManager(client).resolve_path(["a"], ROOT)

        assert node.id == "first"

    def test_empty_segments_return_start_node(self, client):
        """Test that an empty path resolves to the start node."""
        node = NodeManager(client).resolve_path([], ROOT)

        assert node is ROOT
        client.get_children.assert_not_called()

    def test_resolved_prefixes_are_memoized(self, client):
        """Test that resolving the same path twice makes no new calls."""
        manager = NodeManager(client)

        first = manager.resolve_path(["a", "b"], ROOT)
        calls = (client.get_children.call_count, client.create_folder.call_count)
        second = manager.resolve_path(["a", "b"], ROOT)

        assert first == second
        assert (client.get_children.call_count, client.create_folder.call_count) == (
            calls
        )

    def test_find_path_does_not_create(self, client):
        """Test that find_path returns None for a missing folder."""
        manager = NodeManager(client)

        assert manager.find_path(["missing"], ROOT) is None
        client.create_folder.assert_not_called()

    def test_find_path_existing(self, client):
        """Test that find_path walks existing folders."""
        client.get_children.return_value = NodeListing([folder("A", "a")])

        assert NodeManager(client).find_path(["a"], ROOT).id == "A"
