import logging

from booking_ledger.utils.logger import get_logger

LOGGER_NAME = "booking_ledger.tests.logger"


class TestGetLogger:

    def test_keyword_fields_are_rendered(self, caplog):
        logger = get_logger(LOGGER_NAME)

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            logger.info("Created new Booking", booking_id=7, unit_id=3)

        assert "Created new Booking" in caplog.text
        assert "booking_id=7" in caplog.text
        assert "unit_id=3" in caplog.text

    def test_positional_arguments_are_formatted(self, caplog):
        logger = get_logger(LOGGER_NAME)

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            logger.warning("Validation error in create_booking: %s", "plan years must be even")

        assert "Validation error in create_booking: plan years must be even" in caplog.text

    def test_level_filtering_follows_the_standard_library(self, caplog):
        logger = get_logger(LOGGER_NAME)

        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            logger.info("Dispatched event", event_key="booking_completed")

        assert "Dispatched event" not in caplog.text
