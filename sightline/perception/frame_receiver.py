import zmq
import struct
import numpy as np
import cv2
import time
import threading

from ..core.models import Frame
from ..logger import get_logger

logger = get_logger("FrameReceiver")

# Header: capture timestamp (double), depth width, depth height (uint32)
HEADER_FORMAT = 'dII'
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)


def decode_frame(msg):
    """
    Decode one multipart message into a Frame.

    Protocol: [Topic, Header, JPEG image, Depth float32 (may be empty)].
    A 2-part message [Topic, JPEG] carries no header and no depth.
    """
    if len(msg) == 4:
        topic, header, img_data, depth_data = msg
        if len(header) != HEADER_SIZE:
            raise ValueError(f"bad header size {len(header)}")
        timestamp, dw, dh = struct.unpack(HEADER_FORMAT, header)
    elif len(msg) == 2:
        topic, img_data = msg
        timestamp, dw, dh, depth_data = time.time(), 0, 0, b''
    else:
        raise ValueError(f"invalid message length {len(msg)}")

    img_bgr = cv2.imdecode(np.frombuffer(img_data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img_bgr is None:
        raise ValueError("image payload is not a decodable JPEG")

    depth = None
    if depth_data:
        if len(depth_data) != dw * dh * 4:
            raise ValueError(f"depth payload {len(depth_data)} bytes does not match {dw}x{dh}")
        depth = np.frombuffer(depth_data, dtype=np.float32).reshape((dh, dw))

    return Frame(timestamp=timestamp, image=img_bgr, depth=depth)


class FrameReceiver(threading.Thread):
    """
    Subscribes to the camera stream and hands the newest frame to a callback.

    Frames that queued up while the callback was busy are skipped: only the
    most recent message is decoded. `frames_received` / `frames_dropped`
    count what arrived and what was skipped that way.
    """
    def __init__(self, streamer_uri="tcp://localhost:5559", topic="frame", poll_ms=100):
        super().__init__(daemon=True)
        self.streamer_uri = streamer_uri
        self.topic = topic
        self.poll_ms = poll_ms
        self.callback = None
        self.running = False
        self.frames_received = 0
        self.frames_dropped = 0

    def start_receiving(self, callback):
        """Register callback(frame) and start the receive thread."""
        self.callback = callback
        self.start()

    def stop(self, timeout=1.0):
        self.running = False
        if self.is_alive():
            self.join(timeout)
        logger.info("FrameReceiverStopped", {
            "received": self.frames_received,
            "dropped": self.frames_dropped,
        })

    def _open(self, context):
        sub = context.socket(zmq.SUB)
        sub.setsockopt(zmq.RCVHWM, 2)
        sub.setsockopt_string(zmq.SUBSCRIBE, self.topic)
        sub.connect(self.streamer_uri)
        return sub

    def _newest(self, sub):
        """Block up to poll_ms for a message, then drain to the newest one."""
        if not sub.poll(self.poll_ms):
            return None
        msg = sub.recv_multipart()
        self.frames_received += 1
        while sub.poll(0):
            msg = sub.recv_multipart()
            self.frames_received += 1
            self.frames_dropped += 1
        return msg

    def run(self):
        self.running = True
        context = zmq.Context()
        sub = self._open(context)
        logger.info("FrameReceiverListening", {"uri": self.streamer_uri, "topic": self.topic})

        try:
            while self.running:
                try:
                    msg = self._newest(sub)
                    if msg is None:
                        continue
                    frame = decode_frame(msg)
                except ValueError as e:
                    logger.warning("FrameDecodeFailed", {"error": str(e)})
                    continue
                except zmq.ZMQError as e:
                    logger.error("FrameReceiverError", {"error": str(e)})
                    time.sleep(0.1)
                    continue

                if self.callback:
                    self.callback(frame)
        finally:
            sub.close()
            context.term()
