from __future__ import annotations

import base64
from unittest.mock import MagicMock

import httpx
import pytest
import replicate
import requests
from replicate.exceptions import ReplicateError
from replicate.helpers import FileOutput

from mangaforge.common import ConfigurationError, ProviderFailure
from mangaforge.providers import ReplicateImageProvider
from mangaforge.providers.replicate_service import iter_image_outputs


def _http_response(content: bytes, content_type: str = "image/png", status: int = 200) -> MagicMock:
    response = MagicMock()
    response.ok = status < 400
    response.status_code = status
    response.reason = "OK" if response.ok else "Bad Gateway"
    response.content = content
    response.headers = {"Content-Type": content_type}
    return response


def test_generate_image_downloads_url_output():
    client = MagicMock()
    client.run.return_value = ["https://replicate.delivery/out-0.webp"]
    session = MagicMock()
    session.get.return_value = _http_response(b"webp-bytes", "image/webp")
    provider = ReplicateImageProvider(client=client, http_session=session, timeout=30.0)

    payload = provider.generate_image("Page prompt", [], "2:3")

    assert payload.data == b"webp-bytes"
    assert payload.mime_type == "image/webp"
    session.get.assert_called_once_with("https://replicate.delivery/out-0.webp", timeout=30.0)

    model, = client.run.call_args.args
    replicate_input = client.run.call_args.kwargs["input"]
    assert model == "black-forest-labs/flux-dev"
    assert replicate_input["prompt"] == "Page prompt"
    assert replicate_input["aspect_ratio"] == "2:3"
    assert replicate_input["num_outputs"] == 1


def test_generate_image_reads_file_outputs():
    file_output = MagicMock()
    file_output.read.return_value = b"png-bytes"
    file_output.url = "https://replicate.delivery/out-0.png"
    client = MagicMock()
    client.run.return_value = [file_output]

    payload = ReplicateImageProvider(client=client, http_session=MagicMock()).generate_image(
        "p", [], "1:1"
    )

    assert payload.data == b"png-bytes"
    assert payload.mime_type == "image/png"


def test_generate_image_decodes_data_uri_output():
    encoded = base64.b64encode(b"jpeg-bytes").decode("ascii")
    client = MagicMock()
    client.run.return_value = f"data:image/jpeg;base64,{encoded}"

    payload = ReplicateImageProvider(client=client, http_session=MagicMock()).generate_image(
        "p", [], "1:1"
    )

    assert payload.data == b"jpeg-bytes"
    assert payload.mime_type == "image/jpeg"


def test_prediction_errors_carry_status():
    client = MagicMock()
    client.run.side_effect = ReplicateError(status=422, detail="invalid aspect ratio")

    with pytest.raises(ProviderFailure) as excinfo:
        ReplicateImageProvider(client=client, http_session=MagicMock()).generate_image("p", [], "1:1")

    assert excinfo.value.status_code == 422


def test_failed_download_reports_http_status():
    client = MagicMock()
    client.run.return_value = "https://replicate.delivery/out.png"
    session = MagicMock()
    session.get.return_value = _http_response(b"", status=502)

    with pytest.raises(ProviderFailure) as excinfo:
        ReplicateImageProvider(client=client, http_session=session).generate_image("p", [], "1:1")

    assert excinfo.value.status_code == 502


def test_download_transport_error_is_provider_failure():
    client = MagicMock()
    client.run.return_value = "https://replicate.delivery/out.png"
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("reset")

    with pytest.raises(ProviderFailure):
        ReplicateImageProvider(client=client, http_session=session).generate_image("p", [], "1:1")


def test_non_image_download_is_rejected():
    client = MagicMock()
    client.run.return_value = "https://replicate.delivery/out.png"
    session = MagicMock()
    session.get.return_value = _http_response(b"<html>", "text/html")

    with pytest.raises(ProviderFailure, match="non-image"):
        ReplicateImageProvider(client=client, http_session=session).generate_image("p", [], "1:1")


def test_empty_output_fails():
    client = MagicMock()
    client.run.return_value = []

    with pytest.raises(ProviderFailure, match="No image"):
        ReplicateImageProvider(client=client, http_session=MagicMock()).generate_image("p", [], "1:1")


def test_kontext_models_receive_first_reference(reference_image):
    client = MagicMock()
    client.run.return_value = "data:image/png;base64," + base64.b64encode(b"x").decode("ascii")
    provider = ReplicateImageProvider(
        client=client,
        http_session=MagicMock(),
        model_identifier="black-forest-labs/flux-kontext-pro",
    )

    provider.generate_image("p", [reference_image], "3:4")

    assert provider.supports_reference_images is True
    assert client.run.call_args.kwargs["input"]["input_image"] == reference_image.to_data_uri()


def test_text_only_models_do_not_claim_reference_support():
    provider = ReplicateImageProvider(client=MagicMock(), http_session=MagicMock())

    assert provider.supports_reference_images is False


def test_versioned_identifier_resolves_builder():
    provider = ReplicateImageProvider(
        client=MagicMock(),
        http_session=MagicMock(),
        model_identifier="black-forest-labs/flux-schnell:abc123",
    )

    assert provider.model_identifier == "black-forest-labs/flux-schnell:abc123"


def test_unknown_model_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        ReplicateImageProvider(client=MagicMock(), model_identifier="someone/unknown-model")


def test_missing_token_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        ReplicateImageProvider(api_token=None)


def test_iter_image_outputs_joins_streamed_characters():
    url = "https://x.test/a.png"

    assert list(iter_image_outputs(iter(url))) == [url]


def _file_output(url: str, status: int, content: bytes = b"") -> FileOutput:
    transport = httpx.MockTransport(lambda request: httpx.Response(status, content=content))
    return FileOutput(url, replicate.Client(api_token="r8_test", transport=transport))


def test_file_output_download_errors_become_provider_failures():
    client = MagicMock()
    client.run.return_value = [_file_output("https://replicate.delivery/missing.png", 404)]

    with pytest.raises(ProviderFailure) as excinfo:
        ReplicateImageProvider(client=client, http_session=MagicMock()).generate_image(
            "p", [], "2:3"
        )

    assert excinfo.value.status_code == 404


def test_file_output_is_read_through_the_replicate_client():
    client = MagicMock()
    client.run.return_value = [_file_output("https://replicate.delivery/out.png", 200, b"flux")]

    payload = ReplicateImageProvider(client=client, http_session=MagicMock()).generate_image(
        "p", [], "2:3"
    )

    assert payload.data == b"flux"
    assert payload.mime_type == "image/png"
