import unittest

from responses_chat.models import SummaryTotals, Turn, Usage
from responses_chat.pricing import cost_of
from responses_chat.totals import HistoryTotals, compute_history_totals, merge_totals


def _exchange(user_text: str, answer: str, usage: Usage, model: str) -> list[Turn]:
    cost = cost_of(model, usage.input_tokens, usage.output_tokens)
    user = Turn(role="user", text=user_text)
    assistant = Turn(role="assistant", text=answer)
    for turn in (user, assistant):
        turn.attach_request_stats(model=model, usage=usage, cost=cost, duration_seconds=1.0)
    return [user, assistant]


class ComputeHistoryTotalsTests(unittest.TestCase):
    def test_single_exchange_counts_user_anchor_once(self) -> None:
        turns = _exchange("Hi", "Hello", Usage(10, 5, 15), "gpt-3.5-turbo")
        totals = compute_history_totals(turns)
        self.assertEqual(10, totals.input_tokens)
        self.assertEqual(5, totals.output_tokens)
        self.assertEqual(15, totals.total_tokens)
        self.assertAlmostEqual(10 / 1e6 * 129.0 + 5 / 1e6 * 387.0, totals.cost)

    def test_assistant_usage_alone_is_not_counted(self) -> None:
        turns = [
            Turn(role="user", text="Hi"),
            Turn(role="assistant", text="Hello", model="gpt-3.5-turbo", input_tokens=10, output_tokens=5, total_tokens=15),
        ]
        self.assertEqual(HistoryTotals(), compute_history_totals(turns))

    def test_turns_without_usage_are_skipped(self) -> None:
        turns = [Turn(role="user", text="legacy"), Turn(role="assistant", text="reply")]
        turns += _exchange("Q", "A", Usage(7, 3, 10), "unknown-model")
        totals = compute_history_totals(turns)
        self.assertEqual(10, totals.total_tokens)
        self.assertEqual(0.0, totals.cost)

    def test_multiple_exchanges_accumulate(self) -> None:
        turns = _exchange("a", "b", Usage(1, 2, 3), "gpt-4.1") + _exchange("c", "d", Usage(4, 5, 9), "gpt-4.1")
        totals = compute_history_totals(turns)
        self.assertEqual((5, 7, 12), (totals.input_tokens, totals.output_tokens, totals.total_tokens))


class MergeTotalsTests(unittest.TestCase):
    def test_grand_totals_include_summarization_spend(self) -> None:
        history = HistoryTotals(input_tokens=10, output_tokens=5, total_tokens=15, cost=1.5)
        summary = SummaryTotals(requests=2, input_tokens=100, output_tokens=20, total_tokens=120, cost=0.25)
        merged = merge_totals(history, summary)
        self.assertEqual(135, merged.total_tokens)
        self.assertAlmostEqual(1.75, merged.total_cost)
        self.assertIs(history, merged.history)
        self.assertIs(summary, merged.summary)

    def test_missing_components_count_as_zero(self) -> None:
        merged = merge_totals(None, None)
        self.assertEqual(0, merged.total_tokens)
        self.assertEqual(0.0, merged.total_cost)
        self.assertEqual(0, merged.summary.requests)


if __name__ == "__main__":
    unittest.main()
