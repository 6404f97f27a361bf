import tempfile
import unittest
from pathlib import Path

from kdvsim.store.snapshots import FileSnapshotStore, SnapshotStore, MemorySnapshotStore, reset_to_defaults, validate_key


class StoreContract:
    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()

    def test_missing_key(self):
        self.assertIsNone(self.store.get("simulator"))

    def test_set_get_overwrite(self):
        self.store.set("simulator", {"quantity": 500})
        self.store.set("simulator", {"quantity": 750})
        self.assertEqual(self.store.get("simulator"), {"quantity": 750})

    def test_clear_and_keys(self):
        self.store.set("b", [1])
        self.store.set("a", [2])
        self.assertEqual(self.store.keys(), ["a", "b"])
        self.store.clear("a")
        self.store.clear("never-set")
        self.assertEqual(self.store.keys(), ["b"])

    def test_reset(self):
        self.store.set("simulator", {"quantity": 1})
        self.store.set("bulk", {"rows": []})
        reset_to_defaults(self.store)
        self.assertEqual(self.store.keys(), [])

    def test_invalid_key(self):
        with self.assertRaises(ValueError):
            self.store.set("../escape", {})


class TestMemoryStore(StoreContract, unittest.TestCase):
    def make_store(self):
        return MemorySnapshotStore()

    def test_stored_value_is_a_copy(self):
        value = {"quantity": 500}
        self.store.set("simulator", value)
        value["quantity"] = 1
        self.assertEqual(self.store.get("simulator"), {"quantity": 500})


class TestFileStore(StoreContract, unittest.TestCase):
    def make_store(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        return FileSnapshotStore(Path(self._tmp.name) / "snapshots")

    def test_persists_across_instances(self):
        self.store.set("comparison", {"first": {"quantity": 500}})
        again = FileSnapshotStore(self.store.root)
        self.assertEqual(again.get("comparison"), {"first": {"quantity": 500}})
        self.assertTrue((self.store.root / "comparison.json").exists())


class TestKeys(unittest.TestCase):
    def test_base_store_is_abstract(self):
        with self.assertRaises(TypeError):
            SnapshotStore()

    def test_validate_key(self):
        self.assertEqual(validate_key("bulk_results-1"), "bulk_results-1")
        for bad in ("", "a b", "a/b", "x" * 65):
            with self.assertRaises(ValueError):
                validate_key(bad)


if __name__ == "__main__":
    unittest.main()
