import dataclasses
import threading
import unittest

from app.core.download_gate import (
    PREVIEW_TOKEN_PREFIX,
    ConsumeOutcome,
    DownloadGate,
    DownloadGateConfig,
    DownloadSession,
    TokenOutcome,
)


class DownloadGateTests(unittest.TestCase):
    def setUp(self):
        self.gate = DownloadGate(DownloadGateConfig(limit=3, limit_enabled=True))

    def _download(self, session_id="s1", resume_id="r1"):
        decision = self.gate.request_token(session_id, resume_id)
        self.assertEqual(decision.outcome, TokenOutcome.ISSUED)
        return self.gate.consume_token(session_id, resume_id, decision.token)

    def test_budget_of_three_then_denied(self):
        first = self.gate.request_token("s1", "r1")
        self.assertTrue(first.issued)
        self.assertEqual(first.downloads_remaining, 3)

        consumed = self.gate.consume_token("s1", "r1", first.token)
        self.assertEqual(consumed.outcome, ConsumeOutcome.ALLOWED)
        self.assertEqual(consumed.download_count, 1)
        self.assertEqual(consumed.downloads_remaining, 2)

        self.assertTrue(self._download().allowed)
        third = self._download()
        self.assertTrue(third.allowed)
        self.assertEqual(third.downloads_remaining, 0)

        fourth = self.gate.request_token("s1", "r1")
        self.assertEqual(fourth.outcome, TokenOutcome.LIMIT_REACHED)
        self.assertIsNone(fourth.token)
        self.assertEqual(fourth.downloads_remaining, 0)
        self.assertEqual(self.gate.request_token("s9", "r1").downloads_remaining, 3)
        self.assertEqual(self.gate.status("s1", "r1").download_count, 3)

    def test_token_issued_before_limit_cannot_exceed_it(self):
        self._download()
        self._download()
        stale = self.gate.request_token("s1", "r1")
        fresh = self.gate.request_token("s1", "r1")
        self.assertTrue(self.gate.consume_token("s1", "r1", fresh.token).allowed)

        self.assertEqual(
            self.gate.consume_token("s1", "r1", stale.token).outcome,
            ConsumeOutcome.INVALID_TOKEN,
        )
        self.assertEqual(self.gate.status("s1", "r1").download_count, 3)

    def test_limit_reached_on_consume_when_budget_spent_elsewhere(self):
        gate = DownloadGate(DownloadGateConfig(limit=1, limit_enabled=True))
        pending = gate.request_token("s1", "r1")
        entry_token = pending.token
        gate._sessions[("s1", "r1")].download_count = 1
        decision = gate.consume_token("s1", "r1", entry_token)
        self.assertEqual(decision.outcome, ConsumeOutcome.LIMIT_REACHED)
        self.assertIsNone(gate.status("s1", "r1").token)

    def test_token_is_single_use(self):
        decision = self.gate.request_token("s1", "r1")
        self.assertTrue(self.gate.consume_token("s1", "r1", decision.token).allowed)
        replay = self.gate.consume_token("s1", "r1", decision.token)
        self.assertEqual(replay.outcome, ConsumeOutcome.INVALID_TOKEN)
        self.assertEqual(self.gate.status("s1", "r1").download_count, 1)

    def test_mismatched_token_does_not_mutate_state(self):
        decision = self.gate.request_token("s1", "r1")
        rejected = self.gate.consume_token("s1", "r1", "not-the-token")
        self.assertEqual(rejected.outcome, ConsumeOutcome.INVALID_TOKEN)

        snapshot = self.gate.status("s1", "r1")
        self.assertEqual(snapshot.token, decision.token)
        self.assertEqual(snapshot.download_count, 0)
        self.assertTrue(self.gate.consume_token("s1", "r1", decision.token).allowed)

    def test_unknown_pair_and_empty_token_are_invalid(self):
        self.assertEqual(self.gate.consume_token("nobody", "r1", "x").outcome, ConsumeOutcome.INVALID_TOKEN)
        self.gate.request_token("s1", "r1")
        self.assertEqual(self.gate.consume_token("s1", "r1", None).outcome, ConsumeOutcome.INVALID_TOKEN)

    def test_tokens_are_scoped_to_session_and_resume(self):
        decision = self.gate.request_token("s1", "r1")
        self.assertEqual(self.gate.consume_token("s2", "r1", decision.token).outcome, ConsumeOutcome.INVALID_TOKEN)
        self.assertEqual(self.gate.consume_token("s1", "r2", decision.token).outcome, ConsumeOutcome.INVALID_TOKEN)

    def test_counters_are_per_session_and_resume(self):
        for _ in range(3):
            self._download("s1", "r1")
        self.assertTrue(self.gate.request_token("s1", "r2").issued)
        self.assertTrue(self.gate.request_token("s2", "r1").issued)

    def test_disabled_limit_is_unbounded(self):
        gate = DownloadGate(DownloadGateConfig(limit=3, limit_enabled=False))
        for _ in range(10):
            decision = gate.request_token("s1", "r1")
            self.assertTrue(decision.issued)
            self.assertIsNone(decision.downloads_remaining)
            self.assertTrue(gate.consume_token("s1", "r1", decision.token).allowed)
        self.assertEqual(gate.status("s1", "r1").download_count, 10)
        self.assertEqual(len(gate._sessions), 1)
        self.assertEqual(
            {f.name for f in dataclasses.fields(DownloadSession)},
            {"session_id", "resume_id", "token", "download_count", "preview"},
        )

    def test_preview_bypasses_counter_but_needs_token(self):
        self.gate.mark_preview("uploader", "r1")
        for _ in range(5):
            decision = self.gate.request_token("uploader", "r1")
            self.assertTrue(decision.preview)
            self.assertTrue(decision.token.startswith(PREVIEW_TOKEN_PREFIX))
            consumed = self.gate.consume_token("uploader", "r1", decision.token)
            self.assertTrue(consumed.allowed)
            self.assertTrue(consumed.preview)
            replay = self.gate.consume_token("uploader", "r1", decision.token)
            self.assertEqual(replay.outcome, ConsumeOutcome.INVALID_TOKEN)
        self.assertEqual(self.gate.status("uploader", "r1").download_count, 0)
        self.assertFalse(self.gate.is_preview("someone-else", "r1"))

    def test_forget_resume_drops_every_session_for_it(self):
        for _ in range(3):
            self._download("s1", "r1")
        self._download("s2", "r1")
        self._download("s1", "r2")
        self.gate.forget_resume("r1")
        self.assertEqual(self.gate.status("s1", "r1").download_count, 0)
        self.assertEqual(self.gate.status("s2", "r1").download_count, 0)
        self.assertEqual(self.gate.status("s1", "r2").download_count, 1)
        self.assertTrue(self.gate.request_token("s1", "r1").issued)

    def test_concurrent_consumption_never_exceeds_limit(self):
        gate = DownloadGate(DownloadGateConfig(limit=3, limit_enabled=True))
        allowed: list[bool] = []
        allowed_lock = threading.Lock()
        barrier = threading.Barrier(12)

        def worker():
            barrier.wait()
            for _ in range(5):
                decision = gate.request_token("shared", "r1")
                if not decision.issued:
                    continue
                result = gate.consume_token("shared", "r1", decision.token)
                with allowed_lock:
                    allowed.append(result.allowed)

        threads = [threading.Thread(target=worker) for _ in range(12)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertLessEqual(sum(allowed), 3)
        self.assertEqual(gate.status("shared", "r1").download_count, sum(allowed))

        while True:
            decision = gate.request_token("shared", "r1")
            if not decision.issued:
                break
            self.assertTrue(gate.consume_token("shared", "r1", decision.token).allowed)
        self.assertEqual(gate.status("shared", "r1").download_count, 3)


if __name__ == "__main__":
    unittest.main()
