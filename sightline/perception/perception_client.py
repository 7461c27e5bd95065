import zmq
import json
import cv2

from ..errors import InferenceError, ModelLoadError
from ..logger import get_logger

logger = get_logger("PerceptionClient")

class PerceptionClient:
    """
    Request/reply client for the object detection service.

    Protocol: [MetadataJSON, JPEG bytes] -> {"status": ..., "data": [...]}.
    A reply with status "model_error" means the service could not load its
    model; that is reported once as ModelLoadError.
    """
    def __init__(self, service_uri="tcp://localhost:5557", timeout_ms=1000, context=None):
        self.service_uri = service_uri
        self.timeout_ms = timeout_ms
        self.context = context or zmq.Context.instance()
        self.socket = None
        self._connect()

    def _connect(self):
        self.socket = self.context.socket(zmq.REQ)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.connect(self.service_uri)

    def detect(self, img_bgr):
        """
        Sends image to the detection service.
        Returns the list of raw detections; raises InferenceError on timeout.
        """
        ok, img_jpg = cv2.imencode('.jpg', img_bgr)
        if not ok:
            raise InferenceError("JPEG encoding failed")

        # No request options; the metadata part stays an empty JSON object
        self.socket.send_multipart([json.dumps({}).encode(), img_jpg.tobytes()])

        if not self.socket.poll(self.timeout_ms):
            # REQ sockets are stuck after a lost reply; start over
            self.socket.close()
            self._connect()
            logger.debug("PerceptionSocketReset", {"uri": self.service_uri})
            raise InferenceError(f"no reply from {self.service_uri} within {self.timeout_ms} ms")

        result = self.socket.recv_json()
        if result.get("status") == "model_error":
            raise ModelLoadError(result.get("error", "detection service failed to load its model"))
        return result.get("data", [])

    __call__ = detect

    def close(self):
        if self.socket is not None:
            self.socket.close()
            self.socket = None
