import logging
import os
import tempfile
import unittest
from datetime import datetime, timezone

from holderscan.utils import logger


class TestLogger(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.log_dir = os.path.join(self._tmp.name, 'logs')

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        logger._error_log_path = None
        self._tmp.cleanup()

    def test_timestamp_is_current_utc(self):
        before = datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None)
        stamp = datetime.strptime(logger.timestamp(), '%Y-%m-%d %H:%M:%S')
        after = datetime.now(timezone.utc).replace(tzinfo=None)

        self.assertTrue(before <= stamp <= after)

    def test_log_error_writes_error_log(self):
        system_log = logger.setup_logging(self.log_dir, 'DEBUG')

        logger.log_error('page 3 failed')

        self.assertTrue(os.path.exists(system_log))
        with open(os.path.join(self.log_dir, logger.ERROR_LOG_NAME)) as f:
            line = f.read()
        self.assertIn('| ERROR: page 3 failed', line)


if __name__ == '__main__':
    unittest.main()
