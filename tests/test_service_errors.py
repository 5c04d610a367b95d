"""
Tests for ServiceError types and classify().
"""

from unittest.mock import patch

import pytest

from app.core.service_errors import (
    BlockchainError,
    DatabaseError,
    PaymentServiceError,
    PriceServiceError,
    ServiceError,
    ServiceErrorKind,
    UNKNOWN_ERROR_MESSAGE,
    classify,
)


class TestServiceErrorTypes:
    """Tests for the error hierarchy."""

    @pytest.mark.parametrize(
        "error_cls,kind",
        [
            (ServiceError, ServiceErrorKind.GENERIC),
            (BlockchainError, ServiceErrorKind.BLOCKCHAIN),
            (DatabaseError, ServiceErrorKind.DATABASE),
            (PriceServiceError, ServiceErrorKind.PRICE),
            (PaymentServiceError, ServiceErrorKind.PAYMENT),
        ],
    )
    def test_kind_and_name(self, error_cls, kind):
        error = error_cls("boom")

        assert isinstance(error, ServiceError)
        assert error.kind == kind
        assert error.name == error_cls.__name__
        assert error.message == "boom"
        assert str(error) == "boom"
        assert error.code is None

    def test_blockchain_error_carries_code(self):
        error = BlockchainError("reverted", code="-32000")

        assert error.to_dict() == {
            "kind": "blockchain",
            "name": "BlockchainError",
            "message": "reverted",
            "code": "-32000",
        }


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize(
        "service_name,error_cls,message",
        [
            ("blockchain", BlockchainError, "Blockchain operation failed: timeout"),
            ("database", DatabaseError, "Database operation failed: timeout"),
            ("price", PriceServiceError, "Price service failed: timeout"),
            ("payment", PaymentServiceError, "Payment operation failed: timeout"),
            ("email", ServiceError, "Service operation failed: timeout"),
        ],
    )
    def test_classification_table(self, service_name, error_cls, message):
        result = classify(Exception("timeout"), service_name)

        assert type(result) is error_cls
        assert result.message == message

    def test_service_errors_are_returned_unchanged(self):
        original = PaymentServiceError("declined")

        assert classify(original, "blockchain") is original

    def test_non_exception_values_get_unknown_message(self):
        result = classify({"weird": True}, "database")

        assert result.message == f"Database operation failed: {UNKNOWN_ERROR_MESSAGE}"
        assert result.__cause__ is None

    def test_empty_message_is_kept(self):
        result = classify(TimeoutError(), "price")

        assert result.message == "Price service failed: "

    def test_unprintable_error_does_not_raise(self):
        class Unprintable(Exception):
            def __str__(self):
                raise RuntimeError("bad __str__")

            def __repr__(self):
                raise RuntimeError("bad __repr__")

        original = Unprintable()
        result = classify(original, "blockchain")

        assert isinstance(result, BlockchainError)
        assert result.message == "Blockchain operation failed: Unprintable"
        assert result.__cause__ is original

    def test_broken_code_attribute_is_ignored(self):
        class BrokenCode(Exception):
            @property
            def code(self):
                raise RuntimeError("no code")

        assert classify(BrokenCode("x"), "blockchain").code is None

    def test_original_error_is_the_cause(self):
        original = ConnectionError("refused")

        assert classify(original, "payment").__cause__ is original

    def test_blockchain_code_is_taken_from_error(self):
        class RpcFailure(Exception):
            code = -32000

        result = classify(RpcFailure("insufficient funds"), "blockchain")

        assert result.code == "-32000"

    def test_code_is_ignored_for_other_services(self):
        class CodedFailure(Exception):
            code = 42

        assert classify(CodedFailure("x"), "price").code is None

    def test_logs_the_failure(self):
        with patch("app.core.service_errors.logger") as mock_logger:
            classify(ValueError("bad json"), "price")

            mock_logger.error.assert_called_once()
            kwargs = mock_logger.error.call_args.kwargs
            assert kwargs["service"] == "price"
            assert kwargs["error_type"] == "ValueError"

    def test_does_not_log_service_errors(self):
        with patch("app.core.service_errors.logger") as mock_logger:
            classify(BlockchainError("x"), "blockchain")

            mock_logger.error.assert_not_called()
