import threading
import unittest
from unittest import mock

from eventswipe import main_thread


class TestDispatchToMain(unittest.TestCase):
    def test_runs_inline_on_main_thread(self) -> None:
        calls = []
        main_thread.dispatch_to_main(lambda: calls.append(threading.current_thread()))
        self.assertEqual(calls, [threading.main_thread()])

    def test_runs_inline_without_appkit(self) -> None:
        calls = []
        with mock.patch.object(main_thread, "APPKIT_AVAILABLE", False):
            worker = threading.Thread(target=main_thread.dispatch_to_main, args=(lambda: calls.append(1),))
            worker.start()
            worker.join()
        self.assertEqual(calls, [1])


if __name__ == "__main__":
    unittest.main(verbosity=2)
