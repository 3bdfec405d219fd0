"""Caseflow - Storage layer with JSON persistence"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
from pydantic import ValidationError

from caseflow.core.exceptions import StorageKeyError
from caseflow.workflow.models import ConversationWorkflowState


class Storage:
    """JSON storage layer keyed by path segments under <base_dir>/storage"""

    def __init__(self, base_dir: Path):
        """Initialize storage with base directory"""
        self.base_dir = Path(base_dir)
        self.storage_dir = self.base_dir / "storage"

    @staticmethod
    def _check_keys(keys: tuple[str, ...] | List[str]) -> None:
        if not keys:
            raise StorageKeyError("Empty storage key")
        for key in keys:
            if not key or ".." in key or "/" in key or "\\" in key or "\x00" in key:
                raise StorageKeyError(f"Invalid storage key: {key!r}")

    def _get_path(self, *keys: str) -> Path:
        """Get full path for a key with path traversal protection"""
        self._check_keys(keys)

        path = self.storage_dir.joinpath(*keys)
        try:
            resolved = path.resolve()
        except (OSError, RuntimeError) as e:
            raise StorageKeyError(f"Invalid path: {path}") from e
        if not resolved.is_relative_to(self.storage_dir.resolve()):
            raise StorageKeyError(f"Path traversal attempt detected: {path}")
        return path

    def _json_path(self, key: List[str]) -> Path:
        # Segments are checked as given, before the extension is added
        self._check_keys(key)
        key_with_ext = list(key)
        if not key_with_ext[-1].endswith(".json"):
            key_with_ext[-1] = key_with_ext[-1] + ".json"
        return self._get_path(*key_with_ext)

    async def read(self, key: List[str]) -> Optional[Dict[str, Any]]:
        """Read JSON data by key; None if missing or unreadable"""
        path = self._json_path(key)
        try:
            async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError:
            return None
        try:
            data: Dict[str, Any] = json.loads(content)
        except json.JSONDecodeError:
            return None
        return data

    async def write(self, key: List[str], data: Dict[str, Any]) -> None:
        """Write JSON data by key"""
        path = self._json_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, mode="w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2, ensure_ascii=False))

    async def remove(self, key: List[str]) -> bool:
        """Remove data by key"""
        path = self._json_path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False

    async def list(self, prefix: List[str]) -> List[List[str]]:
        """List all keys with given prefix"""
        prefix_path = self._get_path(*prefix)
        if not prefix_path.exists():
            return []
        keys = [list(path.relative_to(self.storage_dir).parts) for path in prefix_path.rglob("*.json")]
        keys.sort()
        return keys


class WorkflowStateStorage(Storage):
    """Workflow snapshot storage: storage/workflow/<session_id>.json"""

    PREFIX = "workflow"

    async def save_state(self, state: ConversationWorkflowState) -> Path:
        """Save a workflow snapshot; the session id is the key"""
        if not state.session_id:
            raise StorageKeyError("Cannot save a workflow state without a session id")
        await self.write([self.PREFIX, state.session_id], state.model_dump(mode="json"))
        return self._json_path([self.PREFIX, state.session_id])

    async def load_state(self, session_id: str) -> Optional[ConversationWorkflowState]:
        """Load a workflow snapshot; None if missing or not a valid state"""
        data = await self.read([self.PREFIX, session_id])
        if data is None:
            return None
        try:
            return ConversationWorkflowState.model_validate(data)
        except ValidationError:
            return None

    async def list_sessions(self) -> List[str]:
        """Session ids with a saved snapshot, sorted"""
        keys = await self.list([self.PREFIX])
        return sorted(Path(key[-1]).stem for key in keys)

    async def delete_state(self, session_id: str) -> bool:
        return await self.remove([self.PREFIX, session_id])
