"""Deterministic content generation: games, questions, quests, and scoring."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Annotated, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field, TypeAdapter

from .grades import VALID_GRADES, Difficulty, Grade, SkillCategory, coerce_grade

logger = logging.getLogger(__name__)

QuestType = Literal["mini_game", "reflection", "choice_scenario"]
QUEST_TYPES: tuple[str, ...] = ("mini_game", "reflection", "choice_scenario")

DEFAULT_QUESTION_COUNT = 12
TEXT_ANSWER_MIN_LENGTH = 10
DEFAULT_HINT_PENALTY = 5.0
MAX_SUMMARY_ITEMS = 2
UNIVERSAL_GRADES: List[int] = [int(grade) for grade in VALID_GRADES]


def round_half_up(value: float) -> int:
    """Round halves up, so 70.5 becomes 71."""
    return int(math.floor(value + 0.5))


def hash_string(value: str) -> int:
    """31-multiplier string hash wrapped to a signed 32-bit integer, then made non-negative."""
    result = 0
    for char in value:
        result = ((result << 5) - result + ord(char)) & 0xFFFFFFFF
    if result >= 0x80000000:
        result -= 0x100000000
    return abs(result)


def seeded_random(seed: float, low: float = 0.0, high: float = 1.0) -> float:
    raw = math.sin(seed) * 10000
    return low + (raw - math.floor(raw)) * (high - low)


@dataclass(frozen=True)
class GameConfig:
    game_id: str
    name: str
    description: str
    estimated_minutes: int
    difficulty: int
    order_index: int
    target_categories: tuple[SkillCategory, ...]
    primary_skills: tuple[SkillCategory, ...]
    secondary_skills: tuple[SkillCategory, ...] = ()
    grade_applicability: tuple[int, ...] = (8, 9, 10)
    difficulty_by_grade: Dict[int, Difficulty] = field(
        default_factory=lambda: {8: "easy", 9: "medium", 10: "medium"}
    )


ASSESSMENT_GAMES: tuple[GameConfig, ...] = (
    GameConfig(
        game_id="pattern_forge",
        name="Pattern Forge",
        description="Discover your logical reasoning abilities through pattern recognition",
        estimated_minutes=10,
        difficulty=2,
        order_index=1,
        target_categories=(SkillCategory.COGNITIVE_REASONING,),
        primary_skills=(SkillCategory.COGNITIVE_REASONING,),
    ),
    GameConfig(
        game_id="many_ways_builder",
        name="Many Ways Builder",
        description="Explore your creativity by finding multiple solutions",
        estimated_minutes=12,
        difficulty=2,
        order_index=2,
        target_categories=(SkillCategory.CREATIVITY,),
        primary_skills=(SkillCategory.CREATIVITY,),
    ),
    GameConfig(
        game_id="story_lens",
        name="Story Lens",
        description="Express yourself through storytelling and narrative thinking",
        estimated_minutes=15,
        difficulty=2,
        order_index=3,
        target_categories=(SkillCategory.LANGUAGE, SkillCategory.CREATIVITY),
        primary_skills=(SkillCategory.LANGUAGE, SkillCategory.CREATIVITY),
    ),
    GameConfig(
        game_id="visual_vault",
        name="Visual Vault",
        description="Test your visual memory and spatial reasoning",
        estimated_minutes=10,
        difficulty=2,
        order_index=4,
        target_categories=(SkillCategory.MEMORY,),
        primary_skills=(SkillCategory.MEMORY,),
    ),
    GameConfig(
        game_id="focus_sprint",
        name="Focus Sprint",
        description="Measure your attention and concentration abilities",
        estimated_minutes=8,
        difficulty=2,
        order_index=5,
        target_categories=(SkillCategory.ATTENTION,),
        primary_skills=(SkillCategory.ATTENTION,),
    ),
    GameConfig(
        game_id="mission_planner",
        name="Mission Planner",
        description="Demonstrate your planning and organizational skills",
        estimated_minutes=12,
        difficulty=2,
        order_index=6,
        target_categories=(SkillCategory.PLANNING,),
        primary_skills=(SkillCategory.PLANNING,),
    ),
    GameConfig(
        game_id="dilemma_compass",
        name="Dilemma Compass",
        description="Navigate ethical decisions and show your values",
        estimated_minutes=15,
        difficulty=3,
        order_index=7,
        target_categories=(SkillCategory.SOCIAL_EMOTIONAL, SkillCategory.CHARACTER_VALUES),
        primary_skills=(SkillCategory.SOCIAL_EMOTIONAL, SkillCategory.CHARACTER_VALUES),
        difficulty_by_grade={8: "easy", 9: "medium", 10: "hard"},
    ),
    GameConfig(
        game_id="replay_reflect",
        name="Replay & Reflect",
        description="Reflect on your learning and metacognitive awareness",
        estimated_minutes=10,
        difficulty=2,
        order_index=8,
        target_categories=(SkillCategory.METACOGNITION,),
        primary_skills=(SkillCategory.METACOGNITION,),
    ),
)

_GAMES_BY_ID: Dict[str, GameConfig] = {game.game_id: game for game in ASSESSMENT_GAMES}


def get_game(game_id: str) -> Optional[GameConfig]:
    return _GAMES_BY_ID.get(game_id)


def all_games() -> List[GameConfig]:
    return sorted(ASSESSMENT_GAMES, key=lambda game: game.order_index)


# ---------------------------------------------------------------------------
# Questions


class MultipleChoiceQuestion(BaseModel):
    type: Literal["multiple_choice"] = "multiple_choice"
    id: str
    question: str
    options: List[str]
    correct_answer: Optional[int] = None
    category: SkillCategory


class SequenceQuestion(BaseModel):
    type: Literal["sequence"] = "sequence"
    id: str
    question: str
    options: List[str]
    correct_answer: Optional[int] = None
    category: SkillCategory


class TextQuestion(BaseModel):
    type: Literal["text"] = "text"
    id: str
    question: str
    category: SkillCategory


Question = Annotated[
    Union[MultipleChoiceQuestion, SequenceQuestion, TextQuestion],
    Field(discriminator="type"),
]
QuestionListAdapter = TypeAdapter(List[Question])

AnswerValue = Union[int, str, None]


def _question_for_game(game_id: str, seed: int, index: int) -> Union[MultipleChoiceQuestion, SequenceQuestion, TextQuestion]:
    question_id = f"q-{seed}-{index}"

    def random_int(low: int, high: int) -> int:
        return int(math.floor(seeded_random(seed + index, low, high + 1)))

    if game_id == "pattern_forge":
        return MultipleChoiceQuestion(
            id=question_id,
            question="What comes next in this pattern: 2, 4, 8, 16, ?",
            options=["24", "32", "28", "20"],
            correct_answer=1,
            category=SkillCategory.COGNITIVE_REASONING,
        )
    if game_id == "many_ways_builder":
        return MultipleChoiceQuestion(
            id=question_id,
            question="How many different ways can you arrange these blocks to build a tower?",
            options=["3 ways", "6 ways", "9 ways", "12 ways"],
            correct_answer=random_int(0, 3),
            category=SkillCategory.CREATIVITY,
        )
    if game_id == "story_lens":
        return TextQuestion(
            id=question_id,
            question='Complete this story: "Once upon a time, a curious explorer discovered..."',
            category=SkillCategory.LANGUAGE,
        )
    if game_id == "visual_vault":
        return SequenceQuestion(
            id=question_id,
            question="Remember the sequence of shapes you just saw. Which order is correct?",
            options=[
                "Circle, Square, Triangle",
                "Square, Circle, Triangle",
                "Triangle, Circle, Square",
                "Circle, Triangle, Square",
            ],
            correct_answer=random_int(0, 3),
            category=SkillCategory.MEMORY,
        )
    if game_id == "focus_sprint":
        return MultipleChoiceQuestion(
            id=question_id,
            question="Count how many times the letter 'A' appears in this text: \"An amazing adventure awaits all adventurers.\"",
            options=["6", "7", "8", "9"],
            correct_answer=2,
            category=SkillCategory.ATTENTION,
        )
    if game_id == "mission_planner":
        return MultipleChoiceQuestion(
            id=question_id,
            question="Plan the steps to organize a school event. What should come first?",
            options=["Set a date", "Choose a venue", "Create a budget", "Form a committee"],
            correct_answer=random_int(0, 3),
            category=SkillCategory.PLANNING,
        )
    if game_id == "dilemma_compass":
        # Option 0 ("Keep it") is never the expected answer.
        return MultipleChoiceQuestion(
            id=question_id,
            question="You find a lost wallet with money. What would you do?",
            options=["Keep it", "Return it to the owner", "Donate the money", "Ask an adult for help"],
            correct_answer=random_int(1, 3),
            category=SkillCategory.SOCIAL_EMOTIONAL,
        )
    if game_id == "replay_reflect":
        return TextQuestion(
            id=question_id,
            question="Reflect on your learning journey. What strategy helped you most?",
            category=SkillCategory.METACOGNITION,
        )
    return MultipleChoiceQuestion(
        id=question_id,
        question=f"Practice question {index + 1}",
        options=["Option A", "Option B", "Option C", "Option D"],
        correct_answer=0,
        category=SkillCategory.COGNITIVE_REASONING,
    )


def generate_questions(
    kind: str,
    seed: str,
    count: int = DEFAULT_QUESTION_COUNT,
) -> List[Union[MultipleChoiceQuestion, SequenceQuestion, TextQuestion]]:
    """Reproducible questions for ``kind``; a pure function of (kind, seed, count)."""
    if kind not in _GAMES_BY_ID:
        logger.debug("Unknown content kind %s; using the generic template", kind)
    base_seed = hash_string(f"{kind}-{seed}")
    return [_question_for_game(kind, base_seed + index, index) for index in range(max(0, count))]


class ScoreResult(BaseModel):
    accuracy: int
    avg_time_per_activity: int
    normalized_score: int
    correct_count: int
    total: int
    strengths: List[str]
    growth_areas: List[str]


def _is_match(question: Union[MultipleChoiceQuestion, SequenceQuestion, TextQuestion], answer: AnswerValue) -> bool:
    if isinstance(question, TextQuestion):
        return answer is not None and len(str(answer)) > TEXT_ANSWER_MIN_LENGTH
    if question.correct_answer is None:
        return answer is not None
    if isinstance(answer, bool) or not isinstance(answer, int):
        return False
    return answer == question.correct_answer


def score_activities(
    questions: Sequence[Union[MultipleChoiceQuestion, SequenceQuestion, TextQuestion]],
    answers: Sequence[AnswerValue],
    time_spent_seconds: float,
    hints_used: int,
    *,
    hint_penalty: float = DEFAULT_HINT_PENALTY,
) -> ScoreResult:
    """Score answers: 70% accuracy, 20% time efficiency, 10% hint independence."""
    total = len(questions)
    correct = sum(1 for question, answer in zip(questions, answers) if _is_match(question, answer))

    accuracy = round_half_up(correct / total * 100) if total else 0
    avg_time = round_half_up(time_spent_seconds / total) if total else 0

    time_efficiency = max(0, 100 - avg_time * 2)
    hints_term = 100 - hints_used * hint_penalty
    blended = accuracy * 0.7 + time_efficiency * 0.2 + hints_term * 0.1
    normalized = round_half_up(min(100.0, max(0.0, blended)))

    strengths: List[str] = []
    growth_areas: List[str] = []
    if accuracy >= 80:
        strengths.append("Strong problem-solving accuracy")
    elif accuracy < 60:
        growth_areas.append("Improving answer accuracy")

    if avg_time < 30:
        strengths.append("Quick decision-making")
    elif avg_time > 60:
        growth_areas.append("Building confidence in responses")

    if hints_used == 0:
        strengths.append("Independent problem-solving")
    elif hints_used > 3:
        growth_areas.append("Developing self-reliance")

    if not strengths:
        strengths.append("Consistent effort")
    if not growth_areas:
        growth_areas.append("Continued practice")

    return ScoreResult(
        accuracy=accuracy,
        avg_time_per_activity=avg_time,
        normalized_score=normalized,
        correct_count=correct,
        total=total,
        strengths=strengths[:MAX_SUMMARY_ITEMS],
        growth_areas=growth_areas[:MAX_SUMMARY_ITEMS],
    )


# ---------------------------------------------------------------------------
# Quests


class QuestBase(BaseModel):
    id: str
    title: str
    description: str
    estimated_minutes: int = Field(..., ge=0)
    skill_signals: List[SkillCategory] = Field(default_factory=list)
    primary_skills: List[SkillCategory] = Field(default_factory=list)
    secondary_skills: List[SkillCategory] = Field(default_factory=list)
    grade_applicability: List[int] = Field(default_factory=lambda: list(UNIVERSAL_GRADES))
    difficulty_by_grade: Dict[int, Difficulty] = Field(default_factory=dict)
    skill_focus: List[SkillCategory] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)


class MiniGameQuest(QuestBase):
    type: Literal["mini_game"] = "mini_game"
    game_id: str
    question_count: int = Field(6, ge=1)


class ReflectionQuest(QuestBase):
    type: Literal["reflection"] = "reflection"
    prompt: str


class ChoiceScenarioQuest(QuestBase):
    type: Literal["choice_scenario"] = "choice_scenario"
    scenario: str
    choices: List[str]


Quest = Annotated[
    Union[MiniGameQuest, ReflectionQuest, ChoiceScenarioQuest],
    Field(discriminator="type"),
]
QuestModel = Union[MiniGameQuest, ReflectionQuest, ChoiceScenarioQuest]
QuestListAdapter = TypeAdapter(List[Quest])


def dump_quests(quests: Sequence[QuestModel]) -> List[dict]:
    return [quest.model_dump(mode="json") for quest in quests]


def load_quests(payload: object) -> List[QuestModel]:
    return list(QuestListAdapter.validate_python(payload))


REFLECTION_PROMPTS: Dict[int, str] = {
    8: "What did you learn today that surprised you? How might you use this learning in the future?",
    9: (
        "Reflect on a challenge you faced today. What strategies did you use, and what would you do "
        "differently next time?"
    ),
    10: (
        "Think about your learning process today. How did you approach new information, and what "
        "patterns did you notice in your thinking?"
    ),
}

SCENARIOS: Dict[int, Dict[str, object]] = {
    8: {
        "scenario": "You're working on a group project and notice a teammate struggling. What do you do?",
        "choices": [
            "Offer to help them understand the concept",
            "Focus on your own work and let them figure it out",
            "Suggest they ask the teacher for help",
            "Work together to find a solution that helps everyone",
        ],
    },
    9: {
        "scenario": "You notice a classmate being excluded from a group activity. How do you respond?",
        "choices": [
            "Invite them to join your group",
            "Talk to a teacher about the situation",
            "Observe and see if the situation resolves itself",
            "Address the group directly about inclusion",
        ],
    },
    10: {
        "scenario": "You discover that a friend has been copying your homework. How do you handle this?",
        "choices": [
            "Confront them directly about academic integrity",
            "Offer to help them understand the material instead",
            "Report it to the teacher",
            "Have a private conversation about the importance of learning",
        ],
    },
}


def reflection_prompt(grade: Union[Grade, int]) -> str:
    return REFLECTION_PROMPTS.get(int(grade), REFLECTION_PROMPTS[8])


def scenario_for_grade(grade: Union[Grade, int]) -> Dict[str, object]:
    return SCENARIOS.get(int(grade), SCENARIOS[8])


def _extra_game_quest(seed: str, number: int, game: GameConfig, grade: Grade, question_count: int) -> MiniGameQuest:
    return MiniGameQuest(
        id=f"quest-{seed}-{number}",
        title=f"{game.name} Challenge",
        description=game.description,
        estimated_minutes=6 if grade >= Grade.NINE else 5,
        game_id=game.game_id,
        question_count=question_count,
        skill_signals=list(game.primary_skills),
        primary_skills=list(game.primary_skills),
        secondary_skills=list(game.secondary_skills),
        grade_applicability=list(game.grade_applicability),
        difficulty_by_grade=dict(game.difficulty_by_grade),
    )


def generate_daily_quests(
    student_id: str,
    day: date,
    count: int = 3,
    grade: Optional[Union[Grade, int]] = None,
) -> List[QuestModel]:
    """Explorer candidate pool for one student and day.

    The first three candidates are the core mini-game, reflection, and
    decision scenario. Larger pools continue through the remaining games so
    every skill has at least one candidate.
    """
    resolved = coerce_grade(grade)
    seed = f"{student_id}-{day.isoformat()}"
    question_count = 8 if resolved >= Grade.NINE else 6
    scenario = scenario_for_grade(resolved)

    quests: List[QuestModel] = [
        MiniGameQuest(
            id=f"quest-{seed}-1",
            title="Quick Pattern Challenge",
            description="Complete a short pattern recognition game",
            estimated_minutes=6 if resolved >= Grade.NINE else 5,
            game_id="pattern_forge",
            question_count=question_count,
            skill_signals=[SkillCategory.COGNITIVE_REASONING],
            primary_skills=[SkillCategory.COGNITIVE_REASONING],
            difficulty_by_grade={8: "easy", 9: "medium", 10: "medium"},
        ),
        ReflectionQuest(
            id=f"quest-{seed}-2",
            title="Daily Reflection",
            description="Take a moment to reflect on your learning",
            estimated_minutes=4 if resolved >= Grade.TEN else 3,
            prompt=reflection_prompt(resolved),
            skill_signals=[SkillCategory.METACOGNITION],
            primary_skills=[SkillCategory.METACOGNITION],
            difficulty_by_grade={8: "easy", 9: "medium", 10: "medium"},
        ),
        ChoiceScenarioQuest(
            id=f"quest-{seed}-3",
            title="Decision Scenario",
            description="Explore how you approach decisions",
            estimated_minutes=5 if resolved >= Grade.TEN else 4,
            scenario=str(scenario["scenario"]),
            choices=list(scenario["choices"]),  # type: ignore[arg-type]
            skill_signals=[SkillCategory.SOCIAL_EMOTIONAL, SkillCategory.CHARACTER_VALUES],
            primary_skills=[SkillCategory.SOCIAL_EMOTIONAL, SkillCategory.CHARACTER_VALUES],
            difficulty_by_grade={8: "easy", 9: "medium", 10: "hard"},
        ),
    ]

    games = all_games()
    number = len(quests) + 1
    while len(quests) < count:
        game = games[(number - 3) % len(games)]
        quests.append(_extra_game_quest(seed, number, game, resolved, question_count))
        number += 1

    return quests[: max(0, count)]


def quest_questions(
    quest: QuestModel,
    seed: str,
) -> List[Union[MultipleChoiceQuestion, SequenceQuestion, TextQuestion]]:
    if not isinstance(quest, MiniGameQuest):
        return []
    return generate_questions(quest.game_id, seed, quest.question_count or 6)


class QuestScoreSummary(BaseModel):
    """Per-type score summary recorded with a completed quest."""

    accuracy: Optional[int] = None
    avg_time_per_question: Optional[int] = None
    normalized_score: Optional[int] = None
    response_length: Optional[int] = None
    response_quality: Optional[int] = None
    choice_index: Optional[int] = None
    choice_made: bool = False


def summarize_mini_game(
    quest: MiniGameQuest,
    seed: str,
    answers: Sequence[AnswerValue],
    time_spent_seconds: float,
    hints_used: int,
    *,
    hint_penalty: float = DEFAULT_HINT_PENALTY,
) -> QuestScoreSummary:
    questions = quest_questions(quest, seed)
    result = score_activities(questions, answers, time_spent_seconds, hints_used, hint_penalty=hint_penalty)
    return QuestScoreSummary(
        accuracy=result.accuracy,
        avg_time_per_question=result.avg_time_per_activity,
        normalized_score=result.normalized_score,
    )


def summarize_reflection(response: str) -> QuestScoreSummary:
    length = len(response or "")
    return QuestScoreSummary(response_length=length, response_quality=min(100, length))


def summarize_choice(choice_index: int) -> QuestScoreSummary:
    return QuestScoreSummary(choice_index=choice_index, choice_made=True)


__all__ = [
    "ASSESSMENT_GAMES",
    "AnswerValue",
    "ChoiceScenarioQuest",
    "GameConfig",
    "MiniGameQuest",
    "MultipleChoiceQuestion",
    "Quest",
    "Question",
    "QuestListAdapter",
    "QuestModel",
    "QuestScoreSummary",
    "QuestType",
    "QUEST_TYPES",
    "ReflectionQuest",
    "ScoreResult",
    "SequenceQuestion",
    "TextQuestion",
    "all_games",
    "dump_quests",
    "generate_daily_quests",
    "generate_questions",
    "get_game",
    "hash_string",
    "load_quests",
    "quest_questions",
    "reflection_prompt",
    "round_half_up",
    "scenario_for_grade",
    "score_activities",
    "seeded_random",
    "summarize_choice",
    "summarize_mini_game",
    "summarize_reflection",
]
