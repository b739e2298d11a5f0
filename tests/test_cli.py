import io
import logging
import tempfile
import unittest
import sys
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from theoremnote.cli import main
from theoremnote.core.logging_config import LOG_FILE_NAME, QUIET_LOGGERS, setup_logging


class TestCli(unittest.TestCase):
    def test_version(self):
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(['--version']), 0)
        self.assertIn('Theorem Note v', out.getvalue())

    def test_render_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            note = Path(tmp) / 'note.md'
            note.write_text('![[fig.png]]\n\n<theorem name="T">\n$x$\n</theorem>\n', encoding='utf-8')

            out = io.StringIO()
            with redirect_stdout(out):
                self.assertEqual(main(['--root', '/notes', 'render', str(note)]), 0)

        html = out.getvalue()
        self.assertIn('src="/notes/_images/fig.png"', html)
        self.assertIn('class="theorem"', html)

    def test_render_missing_file(self):
        err = io.StringIO()
        with redirect_stderr(err):
            self.assertEqual(main(['render', '/no/such/file.md']), 1)
        self.assertIn('Error rendering', err.getvalue())


class TestLoggingConfig(unittest.TestCase):
    def setUp(self):
        self.root_logger = logging.getLogger()
        self.saved_handlers = list(self.root_logger.handlers)
        self.saved_level = self.root_logger.level

    def tearDown(self):
        for handler in list(self.root_logger.handlers):
            self.root_logger.removeHandler(handler)
            handler.close()
        for handler in self.saved_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.saved_level)

    def test_setup_creates_log_file_and_does_not_stack_handlers(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_file = setup_logging(Path(tmp) / 'logs', debug_mode=True)
            setup_logging(Path(tmp) / 'logs', debug_mode=True)

            self.assertEqual(log_file.name, LOG_FILE_NAME)
            self.assertTrue(log_file.exists())
            self.assertEqual(len(self.root_logger.handlers), 2)
            self.assertEqual(self.root_logger.level, logging.DEBUG)

            for handler in list(self.root_logger.handlers):
                self.root_logger.removeHandler(handler)
                handler.close()

    def test_console_follows_mode_and_noisy_loggers_are_quieted(self):
        with tempfile.TemporaryDirectory() as tmp:
            setup_logging(Path(tmp), debug_mode=False)

            file_handler, console_handler = self.root_logger.handlers
            self.assertEqual(file_handler.level, logging.DEBUG)
            self.assertEqual(console_handler.level, logging.INFO)
            for name in QUIET_LOGGERS:
                self.assertEqual(logging.getLogger(name).level, logging.WARNING)

            for handler in list(self.root_logger.handlers):
                self.root_logger.removeHandler(handler)
                handler.close()


if __name__ == '__main__':
    unittest.main()
