import sys
import os
import json
import unittest
from unittest.mock import MagicMock

import numpy as np

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sightline.errors import InferenceError, ModelLoadError
from sightline.perception.perception_client import PerceptionClient


class TestPerceptionClient(unittest.TestCase):
    def setUp(self):
        self.context = MagicMock()
        self.socket = MagicMock()
        self.context.socket.return_value = self.socket
        self.client = PerceptionClient("tcp://detector:5557", timeout_ms=50, context=self.context)
        self.image = np.zeros((48, 64, 3), dtype=np.uint8)

    def test_connects_on_init(self):
        self.socket.connect.assert_called_once_with("tcp://detector:5557")

    def test_detect_returns_data(self):
        payload = [{"class": "person", "confidence": 0.9, "bbox": [0, 0, 10, 10]}]
        self.socket.poll.return_value = True
        self.socket.recv_json.return_value = {"status": "ok", "data": payload}

        self.assertEqual(self.client(self.image), payload)

        meta, jpg = self.socket.send_multipart.call_args[0][0]
        self.assertEqual(json.loads(meta), {})
        self.assertTrue(jpg.startswith(b"\xff\xd8"))

    def test_timeout_resets_socket(self):
        self.socket.poll.return_value = False
        with self.assertRaises(InferenceError):
            self.client.detect(self.image)
        self.socket.close.assert_called_once()
        self.assertEqual(self.context.socket.call_count, 2)

    def test_model_error_status(self):
        self.socket.poll.return_value = True
        self.socket.recv_json.return_value = {"status": "model_error", "error": "yolo.pt not found"}
        with self.assertRaises(ModelLoadError) as ctx:
            self.client.detect(self.image)
        self.assertIn("yolo.pt", str(ctx.exception))

    def test_missing_data_is_empty(self):
        self.socket.poll.return_value = True
        self.socket.recv_json.return_value = {"status": "ok"}
        self.assertEqual(self.client.detect(self.image), [])

    def test_close(self):
        self.client.close()
        self.socket.close.assert_called_once()
        self.assertIsNone(self.client.socket)


if __name__ == "__main__":
    unittest.main()
