"""
Tests for PDU analyzers.
"""

import logging

import pytest

from pdu import PduType
from recorder import CallbackAnalyzer, RecordedPdu, StatisticsAnalyzer, available_analyzers, create_analyzer

from .conftest import make_datagram, make_recorded


class TestStatisticsAnalyzer:
    """Tests for the statistics analyzer."""

    def test_name(self):
        assert StatisticsAnalyzer().name == "Statistics Analyzer"

    def test_counts_by_type(self):
        """PDUs are counted per type code."""
        analyzer = StatisticsAnalyzer(log_interval=0)
        analyzer.analyze_pdu(make_recorded("alpha", 10))
        analyzer.analyze_pdu(make_recorded("alpha", 20))
        analyzer.analyze_pdu(RecordedPdu(make_datagram(PduType.FIRE), int(PduType.FIRE), 30, "alpha"))

        assert analyzer.total_pdus == 3
        assert analyzer.get_pdu_type_counts() == {1: 2, 2: 1}

    def test_bytes_and_duration(self):
        """Byte total and capture span follow the analyzed PDUs."""
        analyzer = StatisticsAnalyzer(log_interval=0)
        first = make_recorded("alpha", 1000)
        last = make_recorded("alpha", 1750)
        analyzer.analyze_pdu(first)
        analyzer.analyze_pdu(last)

        assert analyzer.total_bytes == first.size + last.size
        assert analyzer.get_duration_ms() == 750

    def test_empty(self):
        """A fresh analyzer reports zeros."""
        analyzer = StatisticsAnalyzer()
        assert analyzer.total_pdus == 0
        assert analyzer.get_duration_ms() == 0
        assert analyzer.get_pdu_type_counts() == {}

    def test_logs_every_interval(self, caplog):
        """A summary is logged once per log_interval PDUs."""
        analyzer = StatisticsAnalyzer(log_interval=2)
        with caplog.at_level(logging.INFO, logger="DISRec.Analysis"):
            analyzer.analyze_pdu(make_recorded("alpha", 1))
            assert "Total PDUs" not in caplog.text
            analyzer.analyze_pdu(make_recorded("alpha", 2))
        assert "Total PDUs: 2" in caplog.text

    def test_reset(self):
        analyzer = StatisticsAnalyzer(log_interval=0)
        analyzer.analyze_pdu(make_recorded("alpha", 1))
        analyzer.reset()
        assert analyzer.total_pdus == 0
        assert analyzer.get_pdu_type_counts() == {}

    def test_to_dict(self):
        analyzer = StatisticsAnalyzer(log_interval=0)
        analyzer.analyze_pdu(make_recorded("alpha", 1))
        data = analyzer.to_dict()
        assert data["name"] == "Statistics Analyzer"
        assert data["total_pdus"] == 1
        assert data["pdu_types"] == {"1": 1}


class TestCallbackAnalyzer:
    """Tests for callable-backed analyzers."""

    def test_forwards_pdus(self):
        seen = []
        analyzer = CallbackAnalyzer("collector", seen.append)
        pdu = make_recorded("alpha", 1)
        analyzer.analyze_pdu(pdu)

        assert analyzer.name == "collector"
        assert seen == [pdu]


class TestCreateAnalyzer:
    """Tests for the analyzer factory."""

    def test_statistics(self):
        assert isinstance(create_analyzer("statistics"), StatisticsAnalyzer)
        assert "statistics" in available_analyzers()

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            create_analyzer("spectrum")
