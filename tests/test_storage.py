from __future__ import annotations

import asyncio

import pytest

from spam_detector.services.storage import JsonStorage


class TestJsonStorage:
    def test_read_missing_file_returns_none(self, tmp_path):
        assert asyncio.run(JsonStorage(tmp_path, "missing.json").read()) is None

    def test_write_then_read(self, tmp_path):
        storage = JsonStorage(tmp_path / "nested", "doc.json")
        asyncio.run(storage.write({"updated_at": 1, "tokens": []}))
        assert asyncio.run(storage.read()) == {"updated_at": 1, "tokens": []}
        assert storage.path.exists()

    def test_append_creates_list(self, tmp_path):
        storage = JsonStorage(tmp_path, "list.json")

        async def run():
            await storage.append("a")
            await storage.append("b")
            return await storage.read()

        assert asyncio.run(run()) == ["a", "b"]

    def test_append_to_object_fails(self, tmp_path):
        storage = JsonStorage(tmp_path, "doc.json")
        asyncio.run(storage.write({"a": 1}))
        with pytest.raises(TypeError):
            asyncio.run(storage.append("b"))

    def test_delete(self, tmp_path):
        storage = JsonStorage(tmp_path, "doc.json")
        asyncio.run(storage.write([1]))
        asyncio.run(storage.delete())
        assert not storage.path.exists()
        # deleting twice is fine
        asyncio.run(storage.delete())
