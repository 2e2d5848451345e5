import json
import logging

from django.conf import settings
from django.utils.module_loading import import_string


def test_json_formatter_emits_one_json_object_per_record():
    config = settings.LOGGING["formatters"]["json"]
    formatter = import_string(config["()"])(config["format"])
    record = logging.LogRecord(
        "fulfillment.synchronizer", logging.INFO, __file__, 1, "Ledger sale %s created", ("ORD-1-POS",), None
    )

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Ledger sale ORD-1-POS created"
    assert payload["levelname"] == "INFO"
    assert payload["name"] == "fulfillment.synchronizer"
