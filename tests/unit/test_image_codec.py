import pytest
from app.client.image_codec import decode_data_url, encode_data_url, extension_for

class TestImageCodec:

    def test_data_url_round_trip(self, png_bytes):
        text = encode_data_url(png_bytes, "image/png")

        assert text.startswith("data:image/png;base64,")
        assert decode_data_url(text) == (png_bytes, "image/png")

    def test_bare_base64_uses_fallback_mime(self, png_bytes):
        bare = encode_data_url(png_bytes, "image/png").split(",", 1)[1]

        assert decode_data_url(bare, fallback_mime="image/webp") == (png_bytes, "image/webp")

    @pytest.mark.parametrize("text", ["", "   ", "data:image/png;base64,***", "not base64!"])
    def test_invalid_payload(self, text):
        with pytest.raises(ValueError):
            decode_data_url(text)

    @pytest.mark.parametrize("mime,ext", [("image/jpeg", "jpg"), ("image/png", "png"), ("image/svg+xml", "svg"), ("application/octet-stream", "bin"), ("", "bin")])
    def test_extension_for(self, mime, ext):
        assert extension_for(mime) == ext
