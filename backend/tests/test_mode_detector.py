"""
Tests for keyword-based mode detection.
"""

import pytest

from routers.chat_orchestration.mode_detector import ModeDetector, phrase_confidence
from routers.chat_orchestration.session import ConversationMode


@pytest.fixture
def detector(lexicon):
    return ModeDetector(lexicon)


class TestPhraseConfidence:

    def test_leading_phrase(self):
        assert phrase_confidence("厳しく", "厳しくお願いします") == pytest.approx(1.0)

    def test_early_phrase(self):
        assert phrase_confidence("厳しく", "もっと厳しくお願いします") == pytest.approx(0.9)

    def test_late_phrase(self):
        text = "新しい事業計画について意見がほしいので率直に"
        assert text.find("率直に") > 10
        assert phrase_confidence("率直に", text) == pytest.approx(0.8)

    def test_long_phrase_bonus(self):
        text = "いろいろ考えたのですが、今日はソクラテスモード"
        assert phrase_confidence("ソクラテスモード", text) == pytest.approx(0.9)

    def test_capped_at_one(self):
        assert phrase_confidence("ハードモード", "ハードモードで") == 1.0

    def test_position_is_case_insensitive(self):
        assert phrase_confidence("Hard Mode", "hard mode please") == pytest.approx(1.0)


class TestDetectMode:

    def test_no_phrase_reports_default_with_full_confidence(self, detector):
        result = detector.detect_mode("こんにちは、今日はいい天気ですね")
        assert result.detected_mode == ConversationMode.GUIDE
        assert result.confidence == 1.0
        assert result.trigger_phrase is None

    def test_leading_hard_phrase(self, detector):
        result = detector.detect_mode("ハードモードで事業計画を見てください")
        assert result.detected_mode == ConversationMode.HARD
        assert result.confidence == 1.0
        assert result.trigger_phrase == "ハードモード"

    def test_early_phrase(self, detector):
        result = detector.detect_mode("もっと厳しくレビューしてほしい")
        assert result.detected_mode == ConversationMode.HARD
        assert result.confidence == pytest.approx(0.9)

    def test_late_phrase_stays_at_base(self, detector):
        result = detector.detect_mode("新しい事業計画について意見がほしいので率直に")
        assert result.detected_mode == ConversationMode.HARD
        assert result.confidence == pytest.approx(0.8)

    def test_socrates(self, detector):
        result = detector.detect_mode("ソクラテス式で一緒に考えてほしい")
        assert result.detected_mode == ConversationMode.SOCRATES
        assert result.trigger_phrase == "ソクラテス式"

    def test_english_phrase_case_insensitive(self, detector):
        result = detector.detect_mode("HARD MODE please")
        assert result.detected_mode == ConversationMode.HARD
        assert result.trigger_phrase == "hard mode"

    def test_highest_confidence_wins(self, detector):
        # 優しく leads (1.0), 率直に is late (0.8)
        result = detector.detect_mode("優しく説明してください、率直に")
        assert result.detected_mode == ConversationMode.GUIDE
        assert result.trigger_phrase == "優しく"

    def test_ties_go_to_first_table_entry(self, detector):
        text = "今回のプロジェクトについて優しく、でも厳しく指摘して"
        assert text.find("優しく") > 10
        result = detector.detect_mode(text)
        assert result.detected_mode == ConversationMode.GUIDE
        assert result.confidence == pytest.approx(0.8)

    def test_to_dict(self, detector):
        data = detector.detect_mode("ハードモード").to_dict()
        assert data == {"detectedMode": "hard", "confidence": 1.0, "triggerPhrase": "ハードモード"}


class TestRequestKinds:

    @pytest.mark.parametrize("text", ["助けてください", "HELP me", "何をすればいいかわからない"])
    def test_help_requests(self, detector, text):
        assert detector.is_help_request(text)

    def test_not_help(self, detector):
        assert not detector.is_help_request("新規事業の相談です")

    def test_mode_switch_requests(self, detector):
        assert detector.is_mode_switch_request("モードを変更したい")
        assert detector.is_mode_switch_request("ちょっと切り替えてください")
        assert not detector.is_mode_switch_request("ハードモードで")
