"""Manager for listing remote folders and resolving remote paths."""

import logging
from collections.abc import Sequence
from typing import Optional

from .api import CloudDriveClient
from .models import NodeKind, RemoteNode

logger = logging.getLogger(__name__)

FOLDER_FILTER = f"kind:{NodeKind.FOLDER.value}"


class NodeManager:
    """Lists folder children with automatic pagination and resolves paths."""

    def __init__(self, client: CloudDriveClient):
        """Initialize the node manager.

        Args:
            client: Cloud drive API client
        """
        self.client = client
        self._cache: dict[str, list[RemoteNode]] = {}
        self._path_cache: dict[tuple[str, tuple[str, ...]], RemoteNode] = {}

    def get_all_children(
        self,
        node_id: str,
        filters: Optional[str] = None,
        use_cache: bool = False,
    ) -> list[RemoteNode]:
        """Get all children of a folder, following continuation tokens.

        Args:
            node_id: Folder ID to list
            filters: Optional filter expression (e.g. "kind:FOLDER")
            use_cache: Whether to use and store cached results

        Returns:
            All children in the order the server returned them
        """
        cache_key = f"children:{node_id}:{filters or ''}"
        if use_cache and cache_key in self._cache:
            return self._cache[cache_key]

        all_nodes: list[RemoteNode] = []
        start_token: Optional[str] = None
        page = 0

        while True:
            page += 1
            listing = self.client.get_children(
                node_id, filters=filters, start_token=start_token
            )
            all_nodes.extend(listing.nodes)
            if not listing.next_token:
                break
            start_token = listing.next_token

        logger.debug(
            "Listed %d children of %s in %d page(s)", len(all_nodes), node_id, page
        )

        if use_cache:
            self._cache[cache_key] = all_nodes
        return all_nodes

    def find_child_folder(self, node_id: str, name: str) -> Optional[RemoteNode]:
        """Find a child folder by exact name (first match wins)."""
        for child in self.get_all_children(node_id, filters=FOLDER_FILTER):
            if child.name == name and child.is_folder:
                return child
        return None

    def get_root(self) -> RemoteNode:
        """Return the root folder of the drive."""
        return self.client.get_root_node()

    def resolve_path(
        self, segments: Sequence[str], start_node: RemoteNode
    ) -> RemoteNode:
        """Walk a folder path below start_node, creating missing folders.

        Every segment costs at most one listing and one creation. Once a
        segment had to be created, the remaining segments are created
        without listing their (necessarily empty) parents.

        Args:
            segments: Folder names from the outermost to the innermost
            start_node: Folder the path is relative to

        Returns:
            The folder node of the last segment (start_node for no segments)
        """
        current = start_node
        created = False

        for depth, segment in enumerate(segments):
            key = (start_node.id, tuple(segments[: depth + 1]))
            cached = self._path_cache.get(key)
            if cached is not None:
                current = cached
                continue

            child = None if created else self.find_child_folder(current.id, segment)
            if child is None:
                logger.debug("Creating remote folder '%s' in %s", segment, current.id)
                child = self.client.create_folder(segment, current.id)
                created = True

            self._path_cache[key] = child
            current = child

        return current

    def find_path(
        self, segments: Sequence[str], start_node: RemoteNode
    ) -> Optional[RemoteNode]:
        """Walk a folder path below start_node without creating anything.

        Returns:
            The folder node of the last segment, or None if a segment is missing
        """
        current = start_node
        for segment in segments:
            child = self.find_child_folder(current.id, segment)
            if child is None:
                return None
            current = child
        return current
