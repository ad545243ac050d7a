"""
Quiz walkthrough: Answer → Save for later → Resume → Finish → Leaderboard

Demonstrates end-to-end integration of the scoring engine:
1. Provision a class of students
2. Answer part of a unit quiz and leave early
3. Resume the quiz and finish it
4. Show the committed points and the class leaderboard
"""

import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ascendly import Leaderboard, QuizSession
from ascendly.config import config
from ascendly.models import Account
from ascendly.storage import create_store

CLASS_NAME = "AP Biology"
UNIT = "Unit 3"
QUESTIONS = [
    ("BIO-U3-Q01", True, 8),
    ("BIO-U3-Q02", False, 40),
    ("BIO-U3-Q03", True, 25),
    ("BIO-U3-Q04", True, 55),
]


def main():
    config.configure_logging()
    store = create_store("memory")

    # ==================== Step 1: Provision Accounts ====================
    print("=" * 60)
    print("STEP 1: Provisioning accounts")
    print("=" * 60)

    for account_id, username, score in [
        ("acc-alice", "alice", 0),
        ("acc-bo", "bo", 40),
        ("acc-cy", "cy", 15),
    ]:
        store.upsert_account(
            Account(account_id, username, classes=[CLASS_NAME],
                    class_scores={CLASS_NAME: score})
        )
        print(f"✓ {username} enrolled in {CLASS_NAME} with {score} pts")
    print()

    # ==================== Step 2: First Sitting ====================
    print("=" * 60)
    print("STEP 2: First sitting (leaves after two questions)")
    print("=" * 60)

    session = QuizSession(store, "acc-alice", CLASS_NAME, UNIT, len(QUESTIONS))
    session.start()
    for question_id, is_correct, elapsed in QUESTIONS[:2]:
        outcome = session.answer(question_id, is_correct, elapsed)
        print(f"  {question_id}: +{outcome.points} ({outcome.score.format_breakdown()})")
        session.advance()

    saved = session.save_for_later()
    print(f"\n✓ Saved for later: {saved.final_session_points} pts committed")
    print(f"  {saved.format_breakdown()}")
    print()

    # ==================== Step 3: Resume and Finish ====================
    print("=" * 60)
    print("STEP 3: Resume and finish")
    print("=" * 60)

    resumed = QuizSession(store, "acc-alice", CLASS_NAME, UNIT, len(QUESTIONS))
    progress = resumed.start()
    print(f"✓ Resumed at question {progress.current_index + 1}/{len(QUESTIONS)}")

    for question_id, is_correct, elapsed in QUESTIONS[progress.current_index:]:
        outcome = resumed.answer(question_id, is_correct, elapsed)
        print(f"  {question_id}: +{outcome.points} ({outcome.score.format_breakdown()})")
        final = resumed.advance()

    print(f"\n✓ Finished: {final.final_session_points} pts committed")
    print(f"  {final.format_breakdown()}")
    result = store.list_quiz_results("acc-alice")[0]
    print(f"  Result: {result.score}/{result.total_questions} ({result.percent:.0f}%)")
    print()

    # ==================== Step 4: Leaderboard ====================
    print("=" * 60)
    print("STEP 4: Leaderboard")
    print("=" * 60)

    board = Leaderboard(store)
    for entry in board.rankings(CLASS_NAME):
        print(f"  #{entry.rank} {entry.username:<8} {entry.score:>5} pts  streak {entry.streak}")
    print(f"\n  alice earned {board.daily_points_earned('acc-alice')} pts today")


if __name__ == "__main__":
    main()
