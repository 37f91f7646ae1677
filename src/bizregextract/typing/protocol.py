"""Backend interfaces."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from bizregextract.typing.models import (
        EmailOutcome,
        ExportArtifact,
        ExtractionItem,
        ExtractionResult,
        ImageUpload,
    )


class VisionTransport(Protocol):
    """Low-level access to a vision-capable completion provider."""

    def list_models(self) -> list[str]:
        """Return model identifiers available to the account.

        Returns:
            list[str]: Model ids from the provider catalog.
        """

    def complete(
        self,
        *,
        model: str,
        prompt: str,
        image: ImageUpload,
        headers: Mapping[str, str],
    ) -> tuple[str, str | None]:
        """Run one completion with an inline image.

        Args:
            model: Model identifier.
            prompt: Instruction text.
            image: Image payload.
            headers: Extra request headers.

        Returns:
            tuple[str, str | None]: Output text and provider request id.
        """


class ExtractorBackend(Protocol):
    """Extraction backend interface."""

    def extract(self, codes: Sequence[str], image: ImageUpload) -> ExtractionResult:
        """Extract rows matching any of the target codes.

        Args:
            codes: Normalized target product codes.
            image: Validated image payload.

        Returns:
            ExtractionResult: Unvalidated extraction result.
        """

    def check_connection(self) -> dict[str, Any]:
        """Verify that the provider is reachable.

        Returns:
            dict[str, Any]: Connection report.
        """


class EmailSender(Protocol):
    """Email notification interface."""

    def send_result(
        self,
        product_code: str,
        items: Sequence[ExtractionItem],
        artifact: ExportArtifact,
    ) -> EmailOutcome:
        """Send the export as an attachment.

        Args:
            product_code: Comma-joined target codes.
            items: Validated items.
            artifact: Rendered export.

        Returns:
            EmailOutcome: Delivery outcome.
        """
