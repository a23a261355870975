import logging
import mimetypes
from urllib.parse import quote

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile

from convert_service.config import Settings
from convert_service.conversion import (
    ConversionError,
    ConversionRequest,
    ConversionService,
    UnsupportedConversion,
    build_default_registry,
)

logger = logging.getLogger(__name__)

# Form fields consumed by the endpoint itself; everything else is a converter option
_RESERVED_FIELDS = {"file", "from", "to"}
CHUNK = 1024 * 1024


def _error_response(error: ConversionError) -> JSONResponse:
    body: dict[str, object] = {"success": False, "code": error.code, "message": error.message}
    if isinstance(error, UnsupportedConversion):
        body["available_conversions"] = [c.to_dict() for c in error.capabilities]
    status_code = status.HTTP_400_BAD_REQUEST if error.client_error else status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content=body)


def _media_type(target: str) -> str:
    guessed, _ = mimetypes.guess_type(f"output.{target}")
    return guessed or "application/octet-stream"


def _content_disposition(filename: str) -> str:
    """Attachment header that survives non-latin-1 names (RFC 6266)."""
    fallback = filename.encode("ascii", errors="replace").decode("ascii").replace("?", "_")
    fallback = fallback.replace('"', "_").replace("\\", "_")
    header = f'attachment; filename="{fallback}"'
    quoted = quote(filename, safe="")
    if quoted != filename:
        header += f"; filename*=UTF-8''{quoted}"
    return header


async def _read_upload(file: UploadFile, max_bytes: int) -> bytes | None:
    """Read the upload into memory; None when it exceeds the size limit."""
    buf = bytearray()
    while True:
        chunk = await file.read(CHUNK)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            return None
    return bytes(buf)


def create_app(service: ConversionService | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the HTTP app around a conversion service.

    The registry behind the service is fully populated before the app is
    returned, so every request sees the same converters in the same order.
    """
    settings = settings or Settings.from_env()
    if service is None:
        service = ConversionService(build_default_registry(settings))

    app = FastAPI(
        title="File Conversion Service",
        version=settings.version,
        description="RESTful API for converting files between formats using pluggable converters.",
    )
    app.state.service = service
    app.state.settings = settings

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info("Available conversions:")
        for cap in service.list_capabilities():
            logger.info("  %s -> %s", cap.source.upper(), cap.target.upper())

    @app.get("/health")
    def health() -> dict[str, str]:
        """Basic health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/conversions")
    def list_conversions() -> dict[str, object]:
        return {
            "success": True,
            "conversions": [c.to_dict() for c in service.list_capabilities()],
        }

    @app.post("/api/convert")
    async def convert(request: Request) -> Response:
        """Convert an uploaded file from one format to another.

        Accepts multipart/form-data with a part named "file" and the fields
        "from" and "to". Any other fields are passed to the converter as
        options. Returns the converted bytes as an attachment.
        """
        form = await request.form()
        upload = form.get("file")
        source = form.get("from")
        target = form.get("to")
        options = {k: v for k, v in form.items() if k not in _RESERVED_FIELDS and isinstance(v, str)}

        data: bytes | None = None
        filename: str | None = None
        if isinstance(upload, UploadFile):
            filename = upload.filename
            data = await _read_upload(upload, settings.max_upload_bytes)
            if data is None:
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={
                        "success": False,
                        "code": "payload_too_large",
                        "message": f"upload exceeds {settings.max_upload_mb} MB",
                    },
                )

        conv_request = ConversionRequest(
            data=data,
            source=source if isinstance(source, str) else None,
            target=target if isinstance(target, str) else None,
            options=options,
            filename=filename,
        )
        if conv_request.source and conv_request.target and data is not None:
            logger.info("Converting %s from %s to %s...", filename, conv_request.source, conv_request.target)

        result = await service.handle_async(conv_request)
        if result.error is not None:
            return _error_response(result.error)

        output = result.unwrap()
        output_filename = conv_request.output_filename()
        logger.info("Conversion successful: %s", output_filename)
        return Response(
            content=output,
            media_type=_media_type(str(conv_request.target)),
            headers={"Content-Disposition": _content_disposition(output_filename)},
        )

    return app


app = create_app()


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run("convert_service.webapi:app", host=settings.host, port=settings.port, reload=settings.reload)


if __name__ == "__main__":
    run()
