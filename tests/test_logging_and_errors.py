"""
Tests for structured logging and the exception hierarchy
"""

import json
import logging
import pytest

from utils.exceptions import (
    APIError,
    InvalidResponseError,
    MeTrackerError,
    PersistenceError,
    RateLimitError,
    TransientFetchError,
)
from utils.logger import JSONFormatter, PlainTextFormatter, log_error_with_context, setup_logging


@pytest.mark.unit
class TestFormatters:

    def make_record(self, **extra):
        record = logging.LogRecord('core.pipeline', logging.INFO, __file__, 10, 'Alert sent', None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_includes_extra_fields(self):
        output = json.loads(JSONFormatter().format(self.make_record(symbol='foo', event_id='mintA')))

        assert output['message'] == 'Alert sent'
        assert output['level'] == 'INFO'
        assert output['symbol'] == 'foo'
        assert output['event_id'] == 'mintA'
        assert 'msg' not in output

    def test_plain_text_layout(self):
        line = PlainTextFormatter(datefmt='%Y').format(self.make_record())
        assert '| INFO     | core.pipeline | Alert sent' in line

    def test_setup_rejects_bad_level(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logging(log_level='LOUD', log_file=str(tmp_path / 'x.log'))


@pytest.mark.unit
class TestExceptions:

    def test_hierarchy(self):
        assert issubclass(RateLimitError, APIError)
        assert issubclass(InvalidResponseError, TransientFetchError)
        assert not issubclass(RateLimitError, TransientFetchError)
        assert issubclass(APIError, MeTrackerError)

    def test_rate_limit_defaults(self):
        error = RateLimitError("slow down", retry_after='3')
        assert error.status_code == 429
        assert error.error_code == 'HTTP_429'
        assert 'slow down' in str(error)


@pytest.mark.unit
class TestErrorContextLogging:

    def test_error_fields_are_structured(self, caplog):
        logger = logging.getLogger('core.commands')
        error = PersistenceError("Track list is not valid JSON", path='/tmp/tracks.json')

        with caplog.at_level(logging.ERROR, logger='core.commands'):
            log_error_with_context(logger, "Track list error during list", error, action='list', path=error.path)

        record = caplog.records[-1]
        assert record.getMessage() == "Track list error during list"
        assert record.error_type == 'PersistenceError'
        assert record.path == '/tmp/tracks.json'
        assert record.action == 'list'
        assert record.exc_info[1] is error


@pytest.mark.unit
@pytest.mark.parametrize('package', ['config', 'core', 'utils', 'bot'])
def test_package_star_import(package):
    exec(f"from {package} import *", {})
