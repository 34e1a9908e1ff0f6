"""Tests for invoice note parsing."""

from kiot_board.models import PaymentStatus, WorkItem
from kiot_board.parsing import parse_description, parse_item_line


class TestParseItemLine:
    """Tests for single numbered lines."""

    def test_product_and_work(self):
        """Test parsing a product and its work."""
        assert parse_item_line("1. Áo sơ mi + giặt ủi") == WorkItem("Áo sơ mi", "giặt ủi")

    def test_without_plus_has_empty_work(self):
        """Test an item without a plus has empty work."""
        assert parse_item_line("3. Giày da") == WorkItem("Giày da", "")

    def test_multi_digit_number_prefix(self):
        """Test a multi-digit number prefix."""
        assert parse_item_line("12.Túi xách + vệ sinh") == WorkItem("Túi xách", "vệ sinh")

    def test_segments_after_second_plus_are_dropped(self):
        """Test that segments after the second plus are dropped."""
        item = parse_item_line("1. Giày + vệ sinh + sơn đế")

        assert item == WorkItem("Giày", "vệ sinh")


class TestParseDescription:
    """Tests for full invoice notes."""

    def test_full_note(self):
        """Test parsing a full note."""
        parsed = parse_description("1. Áo sơ mi + giặt ủi\n2. Quần tây + ủi\nĐTT\nHẹn trả: 15/3")

        assert parsed.items == (
            WorkItem("Áo sơ mi", "giặt ủi"),
            WorkItem("Quần tây", "ủi"),
        )
        assert parsed.payment_status == PaymentStatus.PAID
        assert parsed.return_date == "15/3"

    def test_item_count_matches_numbered_lines(self):
        """Test that the item count matches numbered lines."""
        text = "Khách quen\n1. Giày\nghi chú thêm\n2. Túi + vệ sinh\n3. Ví"

        parsed = parse_description(text)

        assert len(parsed.items) == 3

    def test_unpaid_marker(self):
        """Test the unpaid marker."""
        assert parse_description("CTT").payment_status == PaymentStatus.UNPAID

    def test_payment_marker_must_be_whole_line(self):
        """Test that a payment marker must be a whole line."""
        parsed = parse_description("ĐTT rồi\nđã CTT")

        assert parsed.payment_status == PaymentStatus.UNKNOWN

    def test_last_payment_marker_wins(self):
        """Test that the last payment marker wins."""
        assert parse_description("CTT\nĐTT").payment_status == PaymentStatus.PAID

    def test_return_date_is_case_insensitive(self):
        """Test that the return date label is case-insensitive."""
        assert parse_description("HẸN TRẢ:   tối 7/3  ").return_date == "tối 7/3"

    def test_last_return_date_wins(self):
        """Test that the last return date wins."""
        assert parse_description("Hẹn trả: 7/3\nHẹn trả: 9/3").return_date == "9/3"

    def test_crlf_and_blank_lines(self):
        """Test CRLF line endings and blank lines."""
        parsed = parse_description("1. Giày + vệ sinh\r\n\r\n  ĐTT  \r\n")

        assert parsed.items == (WorkItem("Giày", "vệ sinh"),)
        assert parsed.payment_status == PaymentStatus.PAID

    def test_empty_and_missing_note(self):
        """Test empty and missing notes."""
        for text in ("", None, "\n\n   \n"):
            parsed = parse_description(text)
            assert parsed.items == ()
            assert parsed.payment_status == PaymentStatus.UNKNOWN
            assert parsed.return_date == ""

    def test_unrecognised_lines_are_ignored(self):
        """Test that unrecognised lines are ignored."""
        parsed = parse_description("Khách dặn giặt kỹ\n- Giày trắng")

        assert parsed.items == ()

    def test_parsing_is_deterministic(self):
        """Test that parsing is deterministic."""
        text = "1. Áo + giặt\nCTT\nHẹn trả: quá 7/3"

        assert parse_description(text) == parse_description(text)
