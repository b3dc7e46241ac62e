import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from core.scanner import (  # noqa: E402
    PASS,
    BarcodeScanDecoder,
    KeyDecision,
    KeyPress,
    KeyTarget,
)
from db.models import CatalogItem  # noqa: E402
from utils.timers import VirtualClock  # noqa: E402

COLA = CatalogItem(
    id="p-cola", name="Cola", category="Beverages", price=1.25, stock=4, barcode="012000001291"
)


class DecoderTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = VirtualClock()
        self.found = []
        self.missing = []
        self.decoder = BarcodeScanDecoder(
            self.clock, lambda: [COLA], self.found.append, self.missing.append
        )

    def type(self, text, gap=0.01, target=KeyTarget.NONE):
        decisions = []
        for ch in text:
            decisions.append(self.decoder.feed(KeyPress(ch, ch, target=target)))
            self.clock.advance(gap)
        return decisions

    def enter(self, target=KeyTarget.NONE):
        return self.decoder.feed(KeyPress("enter", "\r", target=target))

    def test_burst_resolves_item(self):
        decisions = self.type("012000001291")
        self.assertTrue(all(d.consumed for d in decisions))
        self.assertEqual(self.enter(), KeyDecision(consumed=True))
        self.assertEqual(self.found, [COLA])
        self.assertEqual(self.decoder.buffer, "")

    def test_slow_keys_expire(self):
        self.type("0120", gap=0.25)
        self.assertEqual(self.decoder.buffer, "")
        self.assertEqual(self.enter(), PASS)
        self.assertEqual(self.found, [])
        self.assertEqual(self.missing, [])

    def test_buffer_dropped_after_quiet_window(self):
        self.type("01200000")
        self.clock.advance(0.2)
        self.assertEqual(self.decoder.buffer, "")
        self.type("1291")
        self.enter()
        self.assertEqual(self.found, [])
        self.assertEqual(self.missing, ["1291"])

    def test_unknown_code(self):
        self.type("999")
        self.enter()
        self.assertEqual(self.missing, ["999"])
        self.assertEqual(self.found, [])

    def test_whitespace_trimmed(self):
        self.type(" 012000001291 ")
        self.enter()
        self.assertEqual(self.found, [COLA])

    def test_enter_with_empty_buffer_passes(self):
        self.assertEqual(self.enter(), PASS)
        self.type("   ")
        self.assertEqual(self.enter(), PASS)

    def test_other_text_fields_untouched(self):
        decisions = self.type("012000001291", target=KeyTarget.TEXT)
        self.assertEqual(decisions, [PASS] * 12)
        self.assertEqual(self.enter(KeyTarget.TEXT), PASS)
        self.assertEqual(self.decoder.buffer, "")
        self.assertEqual(self.found, [])

    def test_modifier_keys_ignored(self):
        decision = self.decoder.feed(KeyPress("ctrl+a", None, ctrl=True))
        self.assertEqual(decision, PASS)
        self.assertEqual(self.decoder.buffer, "")

    def test_search_box_typing_passes_through(self):
        decisions = self.type("cola", gap=0.15, target=KeyTarget.SEARCH)
        self.assertEqual(decisions, [PASS] * 4)
        self.assertEqual(self.enter(KeyTarget.SEARCH), PASS)
        self.assertEqual(self.found, [])
        self.assertEqual(self.missing, [])

    def test_search_box_burst_blurs_and_resolves(self):
        first = self.decoder.feed(KeyPress("0", "0", target=KeyTarget.SEARCH))
        self.clock.advance(0.01)
        second = self.decoder.feed(KeyPress("1", "1", target=KeyTarget.SEARCH))
        self.clock.advance(0.01)
        self.assertEqual(first, PASS)
        self.assertEqual(second, KeyDecision(consumed=True, blur_search=True))

        # the box is blurred now, the rest of the burst arrives unfocused
        rest = self.type("2000001291")
        self.assertTrue(all(d.consumed for d in rest))
        self.enter()
        self.assertEqual(self.found, [COLA])

    def test_failing_callback_does_not_break_decoder(self):
        def explode(item):
            raise RuntimeError("cart exploded")

        decoder = BarcodeScanDecoder(self.clock, lambda: [COLA], explode)
        for ch in "012000001291":
            decoder.feed(KeyPress(ch, ch))
        self.assertEqual(decoder.feed(KeyPress("enter", "\r")), PASS)
        self.assertEqual(decoder.buffer, "")
        self.assertFalse(decoder.pending)

        decoder.feed(KeyPress("9", "9"))
        self.assertEqual(decoder.buffer, "9")

    def test_reset(self):
        self.type("0120")
        self.assertTrue(self.decoder.pending)
        self.decoder.reset()
        self.assertEqual(self.decoder.buffer, "")
        self.assertFalse(self.decoder.pending)
        self.assertEqual(self.clock.pending_count, 0)


if __name__ == "__main__":
    unittest.main()
