import unittest

from demystify.models import Indicator, MaCrossCondition, RsiThresholdCondition
from demystify.parser import PATTERN_DETECTORS, parse_strategy
from demystify.signals import StrategyPath, select_strategy_path

TRADITIONAL_TAGS = {
    'RSI_Mean_Reversion', 'MA_Crossover', 'MACD', 'Bollinger_Bands',
    'Breakout', 'Support_Resistance', 'Stop_Loss', 'Take_Profit',
}


class TraditionalParsingTests(unittest.TestCase):
    def test_rsi_turkish_description(self):
        params = parse_strategy("RSI 30'da al, 70'te sat")

        self.assertEqual(params.indicators, [Indicator(type='RSI', period=14)])
        self.assertEqual(params.entryConditions, [RsiThresholdCondition(comparator='<', value=30, period=14)])
        self.assertEqual(params.exitConditions, [RsiThresholdCondition(comparator='>', value=70, period=14)])
        self.assertEqual(params.recognizedPatterns, ['RSI_Mean_Reversion'])
        self.assertFalse(params.isBinaryMarket)

    def test_rsi_with_explicit_period(self):
        params = parse_strategy("Buy when RSI(7) drops below 25, sell above 75")
        self.assertEqual(params.indicators[0].period, 7)
        self.assertEqual(params.entryConditions[0].value, 25)
        self.assertEqual(params.exitConditions[0].value, 75)

    def test_moving_average_crossover(self):
        params = parse_strategy("Buy when price crosses above the 50 day MA")
        self.assertEqual(params.indicators, [Indicator(type='MA', period=50)])
        self.assertEqual(params.entryConditions, [MaCrossCondition(direction='cross_above', period=50)])
        self.assertEqual(params.exitConditions, [MaCrossCondition(direction='cross_below', period=50)])
        self.assertIn('MA_Crossover', params.recognizedPatterns)

    def test_words_containing_rsi_are_not_rsi(self):
        params = parse_strategy("Mean reversion below 20 day MA, 3% stop loss")
        self.assertEqual(params.recognizedPatterns, ['MA_Crossover', 'Stop_Loss'])
        self.assertEqual(select_strategy_path(params), StrategyPath.MA_CROSSOVER)

        for text in ("Persistent trend following", "Diversify across a 50 day MA"):
            self.assertFalse(parse_strategy(text).has_indicator('RSI'), text)

    def test_rsi_levels_skip_unrelated_numbers(self):
        params = parse_strategy("RSI below 30 with 3% stop loss")
        self.assertEqual(params.entryConditions[0].value, 30)
        self.assertEqual(params.exitConditions[0].value, 70)
        self.assertEqual(params.stopLoss, 3.0)

    def test_rsi_levels_from_separate_sentences(self):
        params = parse_strategy("Buy when RSI drops below 25. Sell when RSI rises above 80.")
        self.assertEqual(params.entryConditions[0].value, 25)
        self.assertEqual(params.exitConditions[0].value, 80)

    def test_rsi_period_without_parentheses(self):
        params = parse_strategy("rsi 14 below 30, above 70")
        self.assertEqual(params.indicators, [Indicator(type='RSI', period=14)])
        self.assertEqual(params.entryConditions[0].value, 30)
        self.assertEqual(params.exitConditions[0].value, 70)

        params = parse_strategy("9 period RSI below 35 and above 65")
        self.assertEqual(params.indicators, [Indicator(type='RSI', period=9)])
        self.assertEqual((params.entryConditions[0].value, params.exitConditions[0].value), (35, 65))
        self.assertFalse(params.has_indicator('MA'))

    def test_stop_loss_take_profit_breakout(self):
        params = parse_strategy("Breakout strategy with 2% stop loss and 6% take profit")
        self.assertEqual(params.stopLoss, 2.0)
        self.assertEqual(params.takeProfit, 6.0)
        for tag in ('Breakout', 'Stop_Loss', 'Take_Profit'):
            self.assertIn(tag, params.recognizedPatterns)
        self.assertEqual(params.entryConditions[0].kind, 'breakout')

    def test_macd_and_bollinger(self):
        params = parse_strategy("MACD cross with Bollinger bands confirmation near support")
        self.assertTrue(params.has_indicator('MACD'))
        self.assertTrue(params.has_indicator('BollingerBands'))
        self.assertIn('Support_Resistance', params.recognizedPatterns)

    def test_unmatched_text_gives_empty_parameters(self):
        params = parse_strategy("buy low sell high")
        self.assertEqual(params.indicators, [])
        self.assertEqual(params.entryConditions, [])
        self.assertEqual(params.exitConditions, [])
        self.assertEqual(params.recognizedPatterns, [])
        self.assertIsNone(params.stopLoss)
        self.assertFalse(params.isBinaryMarket)

    def test_none_and_empty_do_not_raise(self):
        self.assertEqual(parse_strategy(None).recognizedPatterns, [])
        self.assertEqual(parse_strategy("").recognizedPatterns, [])

    def test_parse_is_pure(self):
        text = "Polymarket 15m market, buy yes in the last 10 seconds at 0.97, RSI 30 70"
        self.assertEqual(parse_strategy(text).model_dump(), parse_strategy(text).model_dump())


class BinaryParsingTests(unittest.TestCase):
    def test_binary_short_circuits_traditional_detectors(self):
        params = parse_strategy(
            "Polymarket 15m market: buy whichever side in the last 15 seconds if price is 98c. "
            "Also RSI 30 70 with MACD, bollinger and breakout"
        )
        self.assertTrue(params.isBinaryMarket)
        self.assertIn('Time_Window_Entry', params.recognizedPatterns)
        self.assertIn('Price_Threshold', params.recognizedPatterns)
        self.assertFalse(TRADITIONAL_TAGS & set(params.recognizedPatterns))
        self.assertEqual(params.indicators, [])

        self.assertEqual(params.binary.timeWindowSeconds, 15)
        self.assertAlmostEqual(params.binary.priceThreshold, 0.98)
        self.assertEqual(params.binary.sideSelection, 'whichever')
        self.assertIn('Timeframe_Specification', params.recognizedPatterns)
        self.assertEqual(params.timeframe.value, 15)

    def test_order_flow_flagged_even_when_parsed(self):
        params = parse_strategy("polymarket last 15 seconds 98c")
        patterns = [u.pattern for u in params.unrecognized]
        self.assertIn('Order_Flow_Scalping', patterns)
        self.assertIn('Time_Window_Entry', params.recognizedPatterns)
        self.assertIn('Price_Threshold', params.recognizedPatterns)
        flag = params.unrecognized[patterns.index('Order_Flow_Scalping')]
        self.assertGreater(flag.confidence, 0.5)

    def test_binary_keyword_without_sub_patterns_falls_through(self):
        params = parse_strategy("binary option strategy with RSI 30 and 70")
        self.assertTrue(params.isBinaryMarket)
        self.assertIsNone(params.binary.timeWindowSeconds)
        self.assertIsNone(params.binary.priceThreshold)
        self.assertIn('RSI_Mean_Reversion', params.recognizedPatterns)

    def test_decimal_threshold_and_up_side(self):
        params = parse_strategy("Polymarket: buy the yes side above 0.95 in the last 30 sec")
        self.assertAlmostEqual(params.binary.priceThreshold, 0.95)
        self.assertEqual(params.binary.timeWindowSeconds, 30)
        self.assertEqual(params.binary.sideSelection, 'up')

    def test_cents_threshold_normalized(self):
        params = parse_strategy("polymarket entry at 97 cents during the last 10 seconds")
        self.assertAlmostEqual(params.binary.priceThreshold, 0.97)

    def test_minutes_time_window(self):
        params = parse_strategy("polymarket: buy the up side in the last 2 minutes at 90c")
        self.assertEqual(params.binary.timeWindowSeconds, 120)

    def test_down_side_only(self):
        params = parse_strategy("Polymarket: buy the down side in the last 20 seconds at 95c")
        self.assertEqual(params.binary.sideSelection, 'down')

    def test_ambiguous_side_is_flagged_not_guessed(self):
        params = parse_strategy("polymarket: buy up or down in the last 20 seconds at 90c")
        self.assertIsNone(params.binary.sideSelection)
        self.assertIsNone(params.find_condition('side_select'))
        self.assertIn('Ambiguous_Side_Selection', [u.pattern for u in params.unrecognized])

    def test_moving_average_period_is_not_a_price(self):
        params = parse_strategy("On the 15m chart buy when price is over 50 day MA")
        self.assertTrue(params.isBinaryMarket)
        self.assertIsNone(params.binary.priceThreshold)
        self.assertIn('MA_Crossover', params.recognizedPatterns)
        self.assertEqual(select_strategy_path(params), StrategyPath.MA_CROSSOVER)

    def test_bare_price_threshold(self):
        params = parse_strategy("polymarket: buy above 90 within the last 30 seconds")
        self.assertAlmostEqual(params.binary.priceThreshold, 0.9)

    def test_market_pair_phrase_is_not_a_side(self):
        params = parse_strategy("polymarket yes/no market, buy yes in the last 5 seconds at 99c")
        self.assertEqual(params.binary.sideSelection, 'up')

    def test_asset_detected(self):
        params = parse_strategy("polymarket btc 15m, last 30 seconds, 0.9")
        self.assertEqual(params.binary.asset, 'BTC')


class RegistryTests(unittest.TestCase):
    def test_binary_detector_runs_first(self):
        self.assertEqual(PATTERN_DETECTORS[0].name, 'binary_market')
        self.assertFalse(PATTERN_DETECTORS[0].traditional)


if __name__ == "__main__":
    unittest.main()
