import logging
import unittest

from app.logging import setup_logging


class SetupLoggingTests(unittest.TestCase):
    def setUp(self):
        self.root = logging.getLogger()
        self.saved = list(self.root.handlers)

    def tearDown(self):
        self.root.handlers[:] = self.saved

    def test_level_override_and_noisy_libraries(self):
        setup_logging("debug")
        handler = self.root.handlers[0]
        self.assertEqual(handler.level, logging.DEBUG)
        self.assertEqual(logging.getLogger("apscheduler").level, logging.WARNING)
        self.assertEqual(logging.getLogger("httpx").level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self):
        setup_logging("chatty")
        self.assertEqual(self.root.handlers[0].level, logging.INFO)


if __name__ == "__main__":
    unittest.main()
