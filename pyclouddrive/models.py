"""Data models for cloud drive API responses."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class NodeKind(str, Enum):
    """Kind of a remote node."""

    FOLDER = "FOLDER"
    FILE = "FILE"


@dataclass(frozen=True)
class RemoteNode:
    """A folder or file stored in the cloud drive."""

    id: str
    """Opaque node identifier assigned by the server"""

    name: str
    """Node name (unique among siblings is not guaranteed)"""

    kind: NodeKind
    """FOLDER or FILE"""

    parent_ids: frozenset = field(default_factory=frozenset)
    """IDs of the parent folders"""

    md5: Optional[str] = None
    """Content fingerprint reported by the server (FILE nodes only)"""

    size: Optional[int] = None
    """Content size in bytes (FILE nodes only)"""

    content_type: Optional[str] = None
    """MIME type reported by the server (FILE nodes only)"""

    @property
    def is_folder(self) -> bool:
        return self.kind == NodeKind.FOLDER

    @property
    def is_file(self) -> bool:
        return self.kind == NodeKind.FILE

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RemoteNode":
        """Create a RemoteNode from a node JSON object.

        Args:
            data: Node object as returned by the metadata endpoint

        Returns:
            RemoteNode instance

        Raises:
            ValueError: If the object has no id or an unknown kind
        """
        node_id = data.get("id")
        if not node_id:
            raise ValueError(f"Node without id: {data!r}")

        try:
            kind = NodeKind(data.get("kind", ""))
        except ValueError as e:
            raise ValueError(
                f"Unsupported node kind {data.get('kind')!r} for node {node_id}"
            ) from e

        content = data.get("contentProperties") or {}
        size = content.get("size")

        return cls(
            id=str(node_id),
            name=data.get("name", ""),
            kind=kind,
            parent_ids=frozenset(data.get("parents") or ()),
            md5=content.get("md5") or None,
            size=int(size) if size is not None else None,
            content_type=content.get("contentType"),
        )


@dataclass
class NodeListing:
    """One page of a children listing."""

    nodes: list[RemoteNode]
    next_token: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "NodeListing":
        """Parse a listing page.

        Nodes of a kind this client does not handle (e.g. ASSET) are dropped.
        """
        nodes = []
        for item in data.get("data", []):
            if item.get("kind") not in (NodeKind.FOLDER.value, NodeKind.FILE.value):
                continue
            nodes.append(RemoteNode.from_api_response(item))
        return cls(nodes=nodes, next_token=data.get("nextToken") or None)
