import pytest

from app.features.link_audit.schemas.link_audit import ResultRecord
from app.features.link_audit.services.aggregator import ResultAggregator


def record(url):
    return ResultRecord(url=url, title="t", status_code=200)


class TestResultAggregator:
    def test_out_of_order_results_read_back_in_input_order(self):
        aggregator = ResultAggregator(3)
        aggregator.add(2, record("http://c.test"))
        aggregator.add(0, record("http://a.test"))
        aggregator.add(1, record("http://b.test"))

        assert [r.url for r in aggregator.records()] == ["http://a.test", "http://b.test", "http://c.test"]

    def test_incomplete_batch_cannot_be_read(self):
        aggregator = ResultAggregator(2)
        aggregator.add(0, record("http://a.test"))

        assert aggregator.collected == 1
        assert not aggregator.is_complete()
        with pytest.raises(ValueError, match=r"\[1\]"):
            aggregator.records()

    def test_one_record_per_index(self):
        aggregator = ResultAggregator(1)
        aggregator.add(0, record("http://a.test"))

        with pytest.raises(ValueError):
            aggregator.add(0, record("http://a.test"))
        with pytest.raises(IndexError):
            aggregator.add(1, record("http://b.test"))

    def test_empty_batch_is_complete(self):
        assert ResultAggregator(0).records() == []
