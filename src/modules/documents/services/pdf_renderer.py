import io
from abc import ABC, abstractmethod
from dataclasses import dataclass

from PyPDF2 import PdfReader, PdfWriter
from reportlab.pdfgen import canvas

from modules.documents.exceptions import RenderError

BLOCK_X = 100
BLOCK_TOP_Y = 150
LINE_HEIGHT = 14
FONT_NAME = "Helvetica"
FONT_SIZE = 10


@dataclass(frozen=True)
class SignaturePayload:
    full_name: str
    identification_number: str
    signing_timestamp: str
    ip_address: str
    original_pdf_hash: str

    def lines(self) -> list[str]:
        return [
            "Electronic Signature Block",
            "-------------------------",
            f"Full Name: {self.full_name}",
            f"Identification Number: {self.identification_number}",
            f"Signing Timestamp (UTC): {self.signing_timestamp}",
            f"IP Address: {self.ip_address}",
            f"Original PDF Hash (SHA-256): {self.original_pdf_hash}",
            "",
            "This document has been electronically signed.",
        ]


class DocumentRenderer(ABC):

    @abstractmethod
    def append_signature_block(self, pdf_bytes: bytes, payload: SignaturePayload) -> bytes:
        ...


class PdfSignatureRenderer(DocumentRenderer):
    """Estampa el bloque de firma en la última página del PDF."""

    def append_signature_block(self, pdf_bytes: bytes, payload: SignaturePayload) -> bytes:
        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            pages = list(reader.pages)
            if not pages:
                raise RenderError("PDF has no pages to sign")

            last_page = pages[-1]
            width = float(last_page.mediabox.width)
            height = float(last_page.mediabox.height)
            last_page.merge_page(self._build_overlay(width, height, payload))

            writer = PdfWriter()
            for page in pages:
                writer.add_page(page)

            out = io.BytesIO()
            writer.write(out)
            return out.getvalue()
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"Could not render signature block: {e}") from e

    @staticmethod
    def _build_overlay(width: float, height: float, payload: SignaturePayload):
        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=(width, height))
        c.setFillColorRGB(0, 0, 0)
        c.setFont(FONT_NAME, FONT_SIZE)

        y = BLOCK_TOP_Y
        for line in payload.lines():
            c.drawString(BLOCK_X, y, line)
            y -= LINE_HEIGHT

        c.showPage()
        c.save()
        buf.seek(0)
        return PdfReader(buf).pages[0]
