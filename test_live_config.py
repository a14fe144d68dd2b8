import json
import os
import tempfile
import unittest
from unittest import mock

from holderscan.core.holder_aggregator import ConfigurationError, TokenSpec
from holderscan.core.live_config import DEFAULT_CONFIG, load_config, parse_tokens


class TestLiveConfig(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, 'config.json')

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, data):
        with open(self.path, 'w') as f:
            json.dump(data, f)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_missing_keys_fall_back_to_defaults(self):
        self.write({'helius_api_key': 'abc', 'tokens': [{'address': 'MintA', 'price_usd': 0.0021}]})

        config = load_config(self.path)

        self.assertEqual(config['max_requests_per_second'], DEFAULT_CONFIG['max_requests_per_second'])
        self.assertEqual(config['page_limit'], 1000)
        self.assertIsNone(config['max_quota_retries'])
        self.assertEqual(config['tokens'], [TokenSpec('MintA', 0.0021)])

    @mock.patch.dict(os.environ, {'HELIUS_API_KEY': 'from-env'})
    def test_env_api_key_overrides_file(self):
        self.write({'helius_api_key': 'from-file'})

        self.assertEqual(load_config(self.path)['helius_api_key'], 'from-env')

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_creates_default_file_when_missing(self):
        config = load_config(self.path)

        self.assertTrue(os.path.exists(self.path))
        self.assertEqual(config['tokens'], [])
        self.assertEqual(config['mode'], 'threshold')

    def test_rejects_unknown_mode(self):
        self.write({'mode': 'union'})

        with self.assertRaises(ConfigurationError):
            load_config(self.path)

    def test_parse_tokens_accepts_strings_and_camel_case_price(self):
        tokens = parse_tokens(['MintA', {'address': 'MintB', 'priceUsd': '0.5'}])

        self.assertEqual(tokens, [TokenSpec('MintA'), TokenSpec('MintB', 0.5)])

    def test_parse_tokens_rejects_bad_entries(self):
        with self.assertRaises(ConfigurationError):
            parse_tokens([{'price_usd': 1.0}])
        with self.assertRaises(ConfigurationError):
            parse_tokens([{'address': 'MintA', 'price_usd': 'cheap'}])


if __name__ == '__main__':
    unittest.main()
