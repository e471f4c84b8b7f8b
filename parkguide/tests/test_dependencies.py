import unittest
from unittest.mock import patch

from parkguide import dependencies
from parkguide.config import Settings
from parkguide.db import InMemoryParkStore, SqlParkStore


class BackendSelectionTests(unittest.TestCase):
    def test_no_database_url_selects_memory(self):
        with self.assertLogs("parkguide.dependencies", level="WARNING") as logs:
            store = dependencies.build_park_store(Settings(database_url=None))
        self.assertIsInstance(store, InMemoryParkStore)
        self.assertIn("using in-memory storage", logs.output[0])

    def test_database_url_selects_sql(self):
        store = dependencies.build_park_store(
            Settings(database_url="sqlite+pysqlite:///:memory:")
        )
        self.assertIsInstance(store, SqlParkStore)
        store.dispose()

    @patch("parkguide.dependencies._park_store", None)
    @patch("parkguide.dependencies.get_settings")
    def test_store_is_built_once(self, mock_settings):
        mock_settings.return_value = Settings(database_url=None)
        first = dependencies.get_park_store()
        second = dependencies.get_park_store()
        self.assertIs(first, second)
        mock_settings.assert_called_once()


if __name__ == "__main__":
    unittest.main()
