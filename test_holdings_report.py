import json
import os
import tempfile
import unittest
from datetime import datetime, timezone

from holderscan.core.holder_aggregator import HolderSummary, IntersectionResult, ThresholdResult, TokenSpec
from holderscan.inputs.onchain.holder_fetcher import HolderBalance
from holderscan.special.holdings_report import (
    format_usd,
    render_threshold_report,
    write_intersection_report,
    write_threshold_report,
)

TOKENS = [TokenSpec('MintA', 0.002), TokenSpec('MintB', 0.001)]
GENERATED_AT = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


def threshold_result():
    rich = HolderSummary(
        address='rich',
        token_count=2,
        holdings={
            'MintA': HolderBalance('rich', 1_000_000_000, 2_000_000.0),
            'MintB': HolderBalance('rich', 500_000, 500.0),
        },
        total_value_usd=2_000_500.0,
    )
    solo = HolderSummary(
        address='solo',
        token_count=1,
        holdings={'MintB': HolderBalance('solo', 1000, 1.0)},
        total_value_usd=1.0,
    )
    return ThresholdResult(tokens=TOKENS, min_tokens=1, holders=[rich, solo], generated_at=GENERATED_AT)


class TestFormatUsd(unittest.TestCase):
    def test_millions(self):
        self.assertEqual(format_usd(2_000_500.0), '$2.0M')

    def test_thousands(self):
        self.assertEqual(format_usd(1_260.0), '$1.3K')

    def test_small_values(self):
        self.assertEqual(format_usd(12.5), '$12.50')
        self.assertEqual(format_usd(0), '$0.00')


class TestHoldingsReport(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = os.path.join(self._tmp.name, 'output')

    def tearDown(self):
        self._tmp.cleanup()

    def test_threshold_payload_lists_every_token_per_holder(self):
        text, payload = render_threshold_report(threshold_result())

        self.assertEqual(payload['summary'], {'totalHolders': 2, 'minTokensRequired': 1})
        solo = payload['holders'][1]
        self.assertEqual(solo['rank'], 2)
        self.assertEqual(solo['holdings'][0], {'tokenAddress': 'MintA', 'amount': 0, 'valueUsd': 0.0})
        self.assertEqual(solo['holdings'][1]['amount'], 1000)
        self.assertIn('Rank #1', text)
        self.assertIn('Total portfolio value: $2.0M', text)
        self.assertIn('Token MintA: 0 tokens (Value: $0.00)', text)

    def test_write_threshold_report_creates_both_files(self):
        text_path, json_path = write_threshold_report(threshold_result(), self.output_dir)

        self.assertTrue(os.path.basename(text_path).startswith('holdings-report-'))
        self.assertTrue(text_path.endswith('.txt'))
        with open(json_path) as f:
            data = json.load(f)
        self.assertEqual(data['holders'][0]['address'], 'rich')
        self.assertEqual(data['timestamp'], GENERATED_AT.isoformat())
        self.assertEqual(sorted(os.listdir(self.output_dir)), sorted([os.path.basename(text_path), os.path.basename(json_path)]))

    def test_write_intersection_report(self):
        result = IntersectionResult(
            tokens=TOKENS,
            addresses=['rich'],
            holdings={'rich': threshold_result().holders[0].holdings},
            generated_at=GENERATED_AT,
        )

        text_path, json_path = write_intersection_report(result, self.output_dir)

        with open(json_path) as f:
            data = json.load(f)
        self.assertEqual(data['summary'], {'totalHolders': 1, 'tokens': ['MintA', 'MintB']})
        self.assertEqual(data['holders'][0]['holdings'][0]['amount'], 1_000_000_000)
        with open(text_path) as f:
            self.assertIn('hold all 2 tokens', f.read())


if __name__ == '__main__':
    unittest.main()
