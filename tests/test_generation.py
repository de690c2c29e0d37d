import json

import pytest

from tasmee.generation import CLOZE_GAP, QuestionGenerator, _extract_json_array, parse_questions
from tasmee.models import HistoryEntry

RAW = json.dumps(
	[
		{
			"questionId": 1,
			"clozeText": "إِنَّا أَعْطَيْنَاكَ .....",
			"targetWord": "الْكَوْثَرَ",
			"options": ["الْكَوْثَرَ", "النَّهْرَ", "الْخَيْرَ"],
		},
		{"questionId": 2, "clozeText": "فَصَلِّ لِرَبِّكَ ...", "targetWord": "وَانْحَرْ", "options": ["وَاسْجُدْ"]},
		{"questionId": 3, "clozeText": "", "targetWord": "الْأَبْتَرُ"},
		"not an object",
	],
	ensure_ascii=False,
)


class FakeClient:
	def __init__(self, reply="", *, fail=False):
		self.reply = reply
		self.fail = fail
		self.prompts = []
		self.closed = False

	async def generate(self, prompt, *, json_output=False, temperature=None):
		self.prompts.append((prompt, json_output))
		if self.fail:
			raise RuntimeError("Unexpected Gemini response")
		return self.reply

	async def aclose(self):
		self.closed = True


class TestParsing:
	def test_extract_plain_and_fenced(self):
		assert _extract_json_array("[1, 2]") == [1, 2]
		assert _extract_json_array("```json\n[1]\n```") == [1]
		assert _extract_json_array('here you go: [{"a": 1}] thanks') == [{"a": 1}]
		assert _extract_json_array('{"questions": [3]}') == [3]

	def test_extract_failure(self):
		with pytest.raises(ValueError):
			_extract_json_array("no json here")

	def test_parse_questions_skips_malformed_items(self, settings):
		questions = parse_questions(RAW, source_label="الكوثر")
		assert len(questions) == 2
		first, second = questions
		assert first.target_word == "الْكَوْثَرَ"
		assert first.cloze_text.endswith(CLOZE_GAP)
		assert first.source_label == "الكوثر"
		assert first.id != second.id

	def test_gap_is_normalized_and_target_added_to_options(self):
		second = parse_questions(RAW)[1]
		assert second.cloze_text == f"فَصَلِّ لِرَبِّكَ {CLOZE_GAP}"
		assert second.options == ["وَانْحَرْ", "وَاسْجُدْ"]

	def test_target_left_in_cloze_is_elided(self):
		raw = json.dumps([{"clozeText": "قُلْ هُوَ اللَّهُ أَحَدٌ", "targetWord": "أَحَدٌ"}], ensure_ascii=False)
		question = parse_questions(raw)[0]
		assert question.cloze_text == f"قُلْ هُوَ اللَّهُ {CLOZE_GAP}"

	def test_targets_without_arabic_letters_are_dropped(self):
		raw = json.dumps(
			[
				{"clozeText": "وَمَا أَدْرَاكَ .....", "targetWord": "؟"},
				{"clozeText": "آية .....", "targetWord": "12"},
				{"clozeText": "وَالْعَصْرِ .....", "targetWord": "إِنَّ"},
			],
			ensure_ascii=False,
		)
		assert [q.target_word for q in parse_questions(raw)] == ["إِنَّ"]


class TestQuestionGenerator:
	@pytest.mark.asyncio
	async def test_generates_questions(self, settings):
		client = FakeClient(RAW)
		generator = QuestionGenerator(settings, client_factory=lambda: client)
		questions = await generator.generate_questions("نص", "easy", 10, source_label="الكوثر")
		assert [q.target_word for q in questions] == ["الْكَوْثَرَ", "وَانْحَرْ"]
		prompt, json_output = client.prompts[0]
		assert json_output
		assert "Generate exactly 10 questions" in prompt
		assert "نص" in prompt
		assert client.closed

	@pytest.mark.asyncio
	async def test_truncates_to_count(self, settings):
		generator = QuestionGenerator(settings, client_factory=lambda: FakeClient(RAW))
		questions = await generator.generate_questions("نص", "easy", 1)
		assert len(questions) == 1

	@pytest.mark.asyncio
	async def test_client_failure_yields_empty_list(self, settings):
		client = FakeClient(fail=True)
		generator = QuestionGenerator(settings, client_factory=lambda: client)
		assert await generator.generate_questions("نص") == []
		assert client.closed

	@pytest.mark.asyncio
	async def test_unparseable_output_yields_empty_list(self, settings):
		generator = QuestionGenerator(settings, client_factory=lambda: FakeClient("sorry"))
		assert await generator.generate_questions("نص") == []

	@pytest.mark.asyncio
	async def test_missing_api_key_yields_empty_list(self, settings):
		def factory():
			raise ValueError("GEMINI_API_KEY is not configured")

		generator = QuestionGenerator(settings, client_factory=factory)
		assert await generator.generate_questions("نص") == []

	@pytest.mark.asyncio
	async def test_analyze_mistakes(self, settings):
		client = FakeClient("  راجع حرف الحاء  ")
		generator = QuestionGenerator(settings, client_factory=lambda: client)
		entry = HistoryEntry(
			question_id="q1",
			user_utterance="الهمد",
			expected_word="الحمد",
			cloze_text="..... لله",
			is_correct=False,
		)
		assert await generator.analyze_mistakes([entry]) == "راجع حرف الحاء"
		assert "الهمد" in client.prompts[0][0]

	@pytest.mark.asyncio
	async def test_analyze_mistakes_propagates_failure(self, settings):
		generator = QuestionGenerator(settings, client_factory=lambda: FakeClient(fail=True))
		with pytest.raises(RuntimeError):
			await generator.analyze_mistakes([])
