# idreview/ocr_engine.py
import logging

import cv2
import easyocr
import numpy as np
from PIL import Image
from transformers import TrOCRProcessor, VisionEncoderDecoderModel

logger = logging.getLogger(__name__)

TROCR_MODEL = "microsoft/trocr-base-printed"

# Boxes whose top edge is within this many pixels belong to the same line
LINE_Y_THRESHOLD = 20


class OCREngine:
    """
    Reads every line of text on a document image.

    EasyOCR finds the text boxes; each box is then read either by EasyOCR
    itself or by TrOCR. TrOCR only knows English, so it is opt-in.
    """

    def __init__(self, recognizer="easyocr", gpu=False):
        if recognizer not in ("easyocr", "trocr"):
            raise ValueError(f"Unknown recognizer: {recognizer}")
        self.recognizer = recognizer
        self.gpu = gpu
        self._readers = {}
        self.processor = None
        self.model = None

        if recognizer == "trocr":
            logger.info("Loading TrOCR printed model %s", TROCR_MODEL)
            self.processor = TrOCRProcessor.from_pretrained(TROCR_MODEL)
            self.model = VisionEncoderDecoderModel.from_pretrained(TROCR_MODEL)

    def reader_for(self, languages):
        key = tuple(languages)
        if key not in self._readers:
            logger.info("Loading EasyOCR reader for %s", ",".join(key))
            self._readers[key] = easyocr.Reader(list(key), gpu=self.gpu)
        return self._readers[key]

    def preprocess_image(self, image_bytes):
        """
        Decodes the upload and builds the binarised copy used for detection.
        Returns (binary ndarray, original PIL image).
        """
        buffer = np.frombuffer(image_bytes, dtype=np.uint8)
        img = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if img is None:
            raise ValueError("Unsupported or corrupt image")

        # Denoise to remove scan artifacts
        dst = cv2.fastNlMeansDenoisingColored(img, None, 10, 10, 7, 21)
        gray = cv2.cvtColor(dst, cv2.COLOR_BGR2GRAY)

        # Otsu picks the threshold between ink and background
        _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)

        return binary, Image.fromarray(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))

    def trocr_read(self, image_crop):
        pixel_values = self.processor(images=image_crop, return_tensors="pt").pixel_values
        generated_ids = self.model.generate(pixel_values)
        text = self.processor.batch_decode(generated_ids, skip_special_tokens=True)[0]
        return text.strip()

    def group_into_lines(self, boxes):
        """
        Groups detected boxes into visual lines, top to bottom, each line
        sorted left to right.
        """
        boxes = sorted(boxes, key=lambda x: x[0][0][1])

        lines = []
        current_line = []
        for box in boxes:
            if not current_line:
                current_line.append(box)
                continue

            avg_y = sum(b[0][0][1] for b in current_line) / len(current_line)
            if abs(box[0][0][1] - avg_y) < LINE_Y_THRESHOLD:
                current_line.append(box)
            else:
                lines.append(current_line)
                current_line = [box]

        if current_line:
            lines.append(current_line)

        return [sorted(line, key=lambda x: x[0][0][0]) for line in lines]

    def crop(self, bbox, original_image):
        tl, tr, br, bl = bbox

        # Pad by 10% of the box height
        h = int(max(bl[1], br[1])) - int(min(tl[1], tr[1]))
        pad = int(h * 0.1)

        x_min = max(0, int(min(tl[0], bl[0])) - pad)
        x_max = min(original_image.width, int(max(tr[0], br[0])) + pad)
        y_min = max(0, int(min(tl[1], tr[1])) - pad)
        y_max = min(original_image.height, int(max(bl[1], br[1])) + pad)

        return original_image.crop((x_min, y_min, x_max, y_max))

    def read_line(self, line, original_image):
        words = []
        for bbox, text, _confidence in line:
            if self.recognizer == "trocr":
                text = self.trocr_read(self.crop(bbox, original_image))
            text = (text or "").strip()
            if text:
                words.append(text)
        return " ".join(words)

    def recognize(self, image_bytes, languages=("it", "en")):
        """Returns the raw text of the image, one visual line per row."""
        binary, original = self.preprocess_image(image_bytes)

        # Lower text threshold to catch faint print on laminated cards
        boxes = self.reader_for(languages).readtext(binary, mag_ratio=2, text_threshold=0.4)
        if not boxes:
            logger.info("No text detected")
            return ""

        lines = [self.read_line(line, original) for line in self.group_into_lines(boxes)]
        lines = [line for line in lines if line]
        logger.info("Extracted %d lines of text", len(lines))
        return "\n".join(lines)
