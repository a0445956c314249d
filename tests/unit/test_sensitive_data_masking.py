import pytest

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_card_number_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "card": "4242 4242 4242 4242"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "4242 4242 4242 4242" not in result["card"]
        assert "***MASKED***" in result["card"]

    def test_stripe_secret_key_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "detail": "using sk_test_51Habc123"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "sk_test_51Habc123" not in result["detail"]

    def test_webhook_secret_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "detail": "whsec_abcdef123"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["detail"] == "***MASKED***"

    def test_password_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_non_sensitive_data_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {
            "event": "order.created",
            "order_number": "ORD-20260101-ABC123",
            "intent_id": "pi_fake_0123456789abcdef",
        }
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_number"] == "ORD-20260101-ABC123"
        assert result["intent_id"] == "pi_fake_0123456789abcdef"
        assert result["event"] == "order.created"

    def test_nested_values_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {
            "event": "payment.gateway_error",
            "context": {"cards": ["4000 0000 0000 0002"], "status": "failed"},
        }
        result = mask_sensitive_data(None, None, event_dict)
        assert result["context"]["cards"] == ["***MASKED***"]
        assert result["context"]["status"] == "failed"

    def test_client_secret_field_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "client_secret": "pi_123_secret_456"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["client_secret"] == "***MASKED***"
