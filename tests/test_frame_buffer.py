# tests/test_frame_buffer.py
import unittest

import numpy as np

from landmark_task.landmark_detection.frame_buffer import BoundingBox, FrameBuffer, FrameFormat, Orientation
from landmark_task.landmark_detection.image_utils import ImageData
from landmark_task.landmark_detection.preprocess import InputSpec, preprocess
from landmark_task.landmark_detection.status import StatusCode, TaskError, TfLiteSupportStatus


def _marked_frame(w: int = 6, h: int = 4) -> np.ndarray:
    """פריים שחור עם פיקסל לבן בפינה (0, 0) של הנתונים השמורים."""
    data = np.zeros((h, w, 3), dtype=np.uint8)
    data[0, 0] = 255
    return data


class TestOrientation(unittest.TestCase):
    def test_upright_size(self):
        fb = FrameBuffer(data=_marked_frame(6, 4))
        self.assertEqual(fb.upright_size(), (6, 4))
        fb.orientation = Orientation.RIGHT_TOP
        self.assertEqual(fb.upright_size(), (4, 6))

    def test_to_upright_moves_marked_pixel_consistently(self):
        # הפיקסל המסומן (0, 0) בפריים → ממופה חזרה ל-(0, 0) דרך upright_to_frame
        for o in Orientation:
            fb = FrameBuffer(data=_marked_frame(6, 4), orientation=o)
            up = fb.to_upright(fb.to_rgb())
            uw, uh = fb.upright_size()
            self.assertEqual(up.shape[:2], (uh, uw), o.name)
            ys, xs = np.nonzero(up[..., 0])
            self.assertEqual(len(xs), 1, o.name)
            # מרכז הפיקסל בקואורדינטות מנורמלות
            ux, uy = (xs[0] + 0.5) / uw, (ys[0] + 0.5) / uh
            fx, fy = fb.upright_to_frame(ux, uy)
            self.assertAlmostEqual(fx, 0.5 / 6, places=6, msg=o.name)
            self.assertAlmostEqual(fy, 0.5 / 4, places=6, msg=o.name)

    def test_right_top_is_clockwise_rotation(self):
        fb = FrameBuffer(data=_marked_frame(6, 4), orientation=Orientation.RIGHT_TOP)
        up = fb.to_upright(fb.to_rgb())
        # פינה שמאלית-עליונה שמורה → ימנית-עליונה אחרי סיבוב עם כיוון השעון
        self.assertEqual(up[0, -1, 0], 255)


class TestFormats(unittest.TestCase):
    def test_to_rgb(self):
        bgr = np.zeros((2, 2, 3), dtype=np.uint8); bgr[..., 0] = 200
        self.assertEqual(FrameBuffer(bgr, FrameFormat.BGR).to_rgb()[0, 0].tolist(), [0, 0, 200])
        rgba = np.full((2, 2, 4), 7, dtype=np.uint8)
        self.assertEqual(FrameBuffer(rgba, FrameFormat.RGBA).to_rgb().shape, (2, 2, 3))
        gray = np.full((2, 2), 9, dtype=np.uint8)
        self.assertEqual(FrameBuffer(gray, FrameFormat.GRAY).to_rgb()[1, 1].tolist(), [9, 9, 9])

    def test_create_from_rgb_raw_data(self):
        fb = FrameBuffer.create_from_rgb_raw_data(bytes(range(24)), width=4, height=2)
        self.assertEqual((fb.width, fb.height), (4, 2))
        self.assertEqual(fb.data[0, 1].tolist(), [3, 4, 5])
        with self.assertRaises(TaskError):
            FrameBuffer.create_from_rgb_raw_data(b"\x00" * 10, width=4, height=2)

    def test_create_from_image_data(self):
        img = ImageData(pixel_data=np.zeros((3, 5, 4), dtype=np.uint8), width=5, height=3, channels=4)
        fb = FrameBuffer.create_from_image_data(img, orientation=Orientation.BOTTOM_LEFT)
        self.assertIs(fb.format, FrameFormat.RGBA)
        self.assertIs(fb.orientation, Orientation.BOTTOM_LEFT)
        bad = ImageData(pixel_data=np.zeros((3, 5, 2), dtype=np.uint8), width=5, height=3, channels=2)
        with self.assertRaises(TaskError):
            FrameBuffer.create_from_image_data(bad)

    def test_validate(self):
        cases = [
            FrameBuffer(np.zeros((0, 4, 3), dtype=np.uint8)),
            FrameBuffer(np.zeros((4, 4, 3), dtype=np.float32)),
            FrameBuffer(np.zeros((4, 4, 4), dtype=np.uint8), FrameFormat.RGB),
            FrameBuffer(np.zeros((4, 4, 3), dtype=np.uint8), FrameFormat.GRAY),
        ]
        for fb in cases:
            with self.assertRaises(TaskError) as cm:
                fb.validate()
            self.assertEqual(cm.exception.code, StatusCode.INVALID_ARGUMENT)
            self.assertEqual(cm.exception.support_status, TfLiteSupportStatus.INVALID_ARGUMENT_ERROR)


class TestPreprocess(unittest.TestCase):
    def test_uint8_and_float_tensors(self):
        fb = FrameBuffer(np.full((10, 20, 3), 255, dtype=np.uint8))
        t, crop = preprocess(fb, InputSpec(height=8, width=8, dtype=np.uint8))
        self.assertEqual(t.shape, (1, 8, 8, 3))
        self.assertEqual(t.dtype, np.uint8)
        self.assertEqual((crop.upright_width, crop.upright_height), (20, 10))
        self.assertEqual(crop.roi, BoundingBox(0, 0, 20, 10))

        t, _ = preprocess(fb, InputSpec(height=8, width=8, dtype=np.float32))
        self.assertEqual(t.dtype, np.float32)
        self.assertTrue(np.allclose(t, 1.0))

    def test_roi_crop(self):
        data = np.zeros((10, 10, 3), dtype=np.uint8)
        data[5:, 5:] = 255
        t, crop = preprocess(FrameBuffer(data), InputSpec(height=4, width=4, dtype=np.uint8),
                             roi=BoundingBox(5, 5, 5, 5))
        self.assertTrue((t == 255).all())
        self.assertEqual(crop.roi.origin_x, 5)

    def test_invalid_roi(self):
        fb = FrameBuffer(np.zeros((10, 10, 3), dtype=np.uint8))
        spec = InputSpec(height=4, width=4, dtype=np.uint8)
        for roi in (BoundingBox(0, 0, 0, 5), BoundingBox(-1, 0, 5, 5), BoundingBox(6, 6, 5, 5)):
            with self.assertRaises(TaskError) as cm:
                preprocess(fb, spec, roi=roi)
            self.assertEqual(cm.exception.code, StatusCode.INVALID_ARGUMENT)


if __name__ == "__main__":
    unittest.main()
