from ota_gateway.services.fallback import DEFAULT_FALLBACK_REASON, build_fallback_response


def test_fallback_response_shape():
    response = build_fallback_response("expedia", "/hotels", {"city": "Rome"})

    assert response.partner == "expedia"
    assert response.is_fallback
    assert response.metadata.cached is False
    assert response.metadata.reason == DEFAULT_FALLBACK_REASON
    assert response.data["total"] == 1
    assert response.data["properties"] == [
        {
            "id": "expedia_stub_001",
            "name": "Sample Hotel - expedia",
            "location": "Sample City",
            "rating": 4,
            "price": 150.0,
            "currency": "USD",
            "availability": True,
        }
    ]


def test_fallback_is_deterministic_apart_from_timestamp():
    first = build_fallback_response("airbnb", "/x", reason="down")
    second = build_fallback_response("airbnb", "/x", reason="down")

    assert first.data == second.data
    assert first.metadata == second.metadata
