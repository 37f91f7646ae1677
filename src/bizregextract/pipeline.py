"""Request orchestration: validate, extract, export, notify."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from bizregextract import logger
from bizregextract.backends.mock import MockVisionBackend
from bizregextract.backends.openai_vision import OpenAIVisionBackend
from bizregextract.backends.resend_email import ResendEmailSender
from bizregextract.export import build_export
from bizregextract.result_validation import validate_extraction_result
from bizregextract.typing.models import EmailDebug, ProcessOutcome
from bizregextract.validation import parse_product_codes, validate_image_upload

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from bizregextract.settings import Settings
    from bizregextract.typing.models import ExportArtifact, ExtractionItem, ImageUpload
    from bizregextract.typing.protocol import EmailSender, ExtractorBackend


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ExtractionPipeline:
    """Run one extraction request end to end."""

    def __init__(
        self,
        settings: Settings,
        backend: ExtractorBackend,
        notifier: EmailSender | None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize pipeline.

        Args:
            settings (Settings): Runtime settings.
            backend (ExtractorBackend): Extraction backend.
            notifier (EmailSender | None): Email sender, None to skip notification.
            clock (Callable[[], datetime]): Source of the processing timestamp.
        """
        self.settings = settings
        self.backend = backend
        self.notifier = notifier
        self._clock = clock

    def validate_input(
        self,
        raw_codes: str,
        *,
        filename: str | None,
        content_type: str | None,
        data: bytes | None,
    ) -> tuple[list[str], ImageUpload]:
        """Validate codes first, then the uploaded file.

        Raises:
            InputError: If any input is rejected.

        Returns:
            tuple[list[str], ImageUpload]: Normalized codes and validated image.
        """
        codes = parse_product_codes(raw_codes, self.settings.product_code_pattern)
        logger.info("Target product codes", extra={"product_codes": codes})
        image = validate_image_upload(filename=filename, content_type=content_type, data=data)
        logger.info(
            "Image received",
            extra={"image_name": image.filename, "size": image.size, "content_type": image.content_type},
        )
        return codes, image

    def process(
        self,
        raw_codes: str,
        *,
        filename: str | None,
        content_type: str | None,
        data: bytes | None,
    ) -> ProcessOutcome:
        """Validate the request and run the pipeline.

        Returns:
            ProcessOutcome: Validated result, export and email report.
        """
        codes, image = self.validate_input(raw_codes, filename=filename, content_type=content_type, data=data)
        return self.run(codes, image)

    def run(self, codes: Sequence[str], image: ImageUpload) -> ProcessOutcome:
        """Extract, validate, export and notify.

        Args:
            codes (Sequence[str]): Normalized target codes.
            image (ImageUpload): Validated image.

        Raises:
            ExtractionError: If the backend fails or returns malformed output.
            ResultValidationError: If the result is empty or below the threshold.

        Returns:
            ProcessOutcome: Outcome of the run.
        """
        raw_result = self.backend.extract(codes, image)
        logger.info(
            "Extraction finished",
            extra={
                "total_found": raw_result.total_found,
                "items": len(raw_result.items),
                "confidence": raw_result.confidence,
                "provider": raw_result.provider.to_str(),
            },
        )
        result = validate_extraction_result(raw_result, self.settings.min_confidence)

        artifact = build_export(result.items, self._clock())
        logger.info("Export generated", extra={"filename": artifact.filename, "rows": artifact.row_count})

        product_code = ",".join(codes)
        email = self._notify(product_code, result.items, artifact)
        return ProcessOutcome(product_codes=list(codes), result=result, export=artifact, email=email)

    def _notify(
        self,
        product_code: str,
        items: Sequence[ExtractionItem],
        artifact: ExportArtifact,
    ) -> EmailDebug:
        """Send the export; failures are reported, not raised.

        Returns:
            EmailDebug: Delivery report.
        """
        debug = EmailDebug(
            attempted=self.notifier is not None,
            sender_email=self.settings.sender_email,
            recipient_email=self.settings.recipient_email,
        )
        if self.notifier is None:
            return debug

        try:
            outcome = self.notifier.send_result(product_code, items, artifact)
        except Exception as exc:
            logger.exception("Email send raised")
            debug.error = str(exc)
            debug.error_details = {"name": type(exc).__name__, "message": str(exc)}
            return debug

        debug.success = outcome.success
        debug.message_id = outcome.message_id
        debug.error = outcome.error
        if not outcome.success:
            debug.error_details = {"message": outcome.error}
        return debug


def build_backend(settings: Settings) -> ExtractorBackend:
    """Return the mock backend in mock mode, the OpenAI backend otherwise."""
    if settings.mock_llm:
        return MockVisionBackend()
    return OpenAIVisionBackend(settings)


def build_pipeline(settings: Settings, *, send_email: bool = True) -> ExtractionPipeline:
    """Assemble a pipeline from settings.

    Args:
        settings (Settings): Runtime settings.
        send_email (bool): Whether results are emailed.

    Returns:
        ExtractionPipeline: Ready-to-use pipeline.
    """
    notifier = ResendEmailSender(settings) if send_email else None
    return ExtractionPipeline(settings, build_backend(settings), notifier)
