import logging
import os
import tempfile
import unittest

import numpy as np

from handcascade.drawing import HAND_CONNECTIONS, draw_track_result, to_pixels
from handcascade.logger import LOGGER_NAME, get_logger, setup_logging
from handcascade.types import PoseProbabilities, TrackResult


def result(present=0.9, pinch=0.0):
    coords = [[0.2 + 0.03 * i, 0.3 + 0.02 * i] for i in range(21)]
    return TrackResult(
        coordinates=coords,
        is_left_hand_prob=0.8,
        is_hand_present_prob=present,
        poses=PoseProbabilities(pinch_prob=pinch, fist_prob=0.0),
    )


class TestDrawing(unittest.TestCase):
    def test_connections_cover_all_landmarks(self):
        used = {i for pair in HAND_CONNECTIONS for i in pair}
        self.assertEqual(used, set(range(21)))

    def test_to_pixels_clamps(self):
        r = TrackResult(coordinates=[[-0.5, 0.5], [1.5, 1.0]], is_left_hand_prob=0.0, is_hand_present_prob=1.0)
        self.assertEqual(to_pixels(r, 101, 51), [(0, 25), (100, 50)])

    def test_draws_present_hand(self):
        frame = np.zeros((120, 160, 3), dtype=np.uint8)
        self.assertIs(draw_track_result(frame, result(pinch=0.9)), frame)
        self.assertTrue(frame.any())

    def test_absent_hand_draws_nothing(self):
        frame = np.zeros((120, 160, 3), dtype=np.uint8)
        draw_track_result(frame, result(present=0.1))
        self.assertFalse(frame.any())


class TestLogger(unittest.TestCase):
    def tearDown(self):
        logger = logging.getLogger(LOGGER_NAME)
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_console_only(self):
        logger = setup_logging()
        self.assertEqual(logger.name, LOGGER_NAME)
        self.assertEqual(logger.level, logging.INFO)
        self.assertEqual(len(logger.handlers), 1)

    def test_file_handler(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "track.log")
            logger = setup_logging(debug=True, log_file=path)
            self.assertEqual(logger.level, logging.DEBUG)
            self.assertEqual(len(logger.handlers), 2)
            get_logger("engine").debug("tick")
            for handler in logger.handlers:
                handler.flush()
                handler.close()
            logger.handlers.clear()
            with open(path, encoding="utf-8") as f:
                self.assertIn("tick", f.read())

    def test_module_loggers_are_children(self):
        self.assertEqual(get_logger("engine").name, "handcascade.engine")
        self.assertIs(get_logger(), logging.getLogger(LOGGER_NAME))


if __name__ == "__main__":
    unittest.main()
