from typing import List


GAME_SYSTEM = "You are a chess analysis engine."
OPPONENT_SYSTEM = "You are an assistant that analyzes chess games."

GAME_SCHEMA = """type MistakeCategory = "inaccuracy" | "mistake" | "blunder";

interface KeyMoment {
  moveNumber: number;
  description: string;
  evaluationChange: number; // centipawns (positive = good for the analyzed side)
}

interface Mistake {
  moveNumber: number;
  movePlayed: string;
  category: MistakeCategory;
  explanation: string;
  bestSuggestion?: string;
  bestSuggestionExplanation?: string;
}

interface Exercise {
  title: string;
  description: string;
  exerciseType: "tactic" | "endgame" | "opening" | "strategy";
  estimatedLevel: "beginner" | "intermediate" | "advanced";
}

interface GameReport {
  summary: string;
  analyzedSide: "White" | "Black";
  result: "1-0" | "0-1" | "1/2-1/2";
  keyMoments: KeyMoment[];
  mistakes: Mistake[];
  recommendedExercises: Exercise[];
}"""

OPPONENT_SCHEMA = """type ExerciseType = "tactic" | "endgame" | "opening" | "strategy";
type EstimatedLevel = "beginner" | "intermediate" | "advanced";

type OpponentReport = {
  globalSummary: string;
  mainWeaknesses: string[];
  mainStrengths: string[];
  frequentErrors: {
    theme: string;
    description: string;
    howToPunish: string;
  }[];
  recommendedExercises: {
    title: string;
    description: string;
    exerciseType: ExerciseType;
    estimatedLevel: EstimatedLevel;
    positionFen: string;
    solution: string[];
    hint: string;
    weaknessExploited: string;
    moveVariants: {
      move: string;
      isBest: boolean;
      explanation?: string;
      opponentResponse?: string;
    }[];
    opponentMoves: string[];
  }[];
};"""

PGN_SEPARATOR = "---PGN---"


def build_game_prompt(pgn: str) -> str:
    return f"""You are an experienced chess coach of International Master strength.

You are given a complete game in PGN notation. Analyze it in depth, paying
attention to tactical and strategic details.

1. SUMMARY: name the analyzed side (White or Black), give the result
   (1-0, 0-1 or 1/2-1/2) and summarize the game (opening, strategic themes,
   turning points, quality of play).

2. KEY MOMENTS: every moment where the evaluation changes by more than 50
   centipawns. For each: the exact move number (moveNumber), a detailed
   description, and the evaluation change in centipawns (positive when it
   favours the analyzed side).

3. MISTAKES: every inaccuracy (10-30 centipawns lost), mistake (30-100) and
   blunder (over 100) of the analyzed side, with the move number, the move
   played in SAN (movePlayed), the category, a detailed explanation, the best
   move in SAN (bestSuggestion) and why it is better
   (bestSuggestionExplanation).

4. EXERCISES: 3-5 targeted exercises, each with a title, description, type
   and estimated level.

Answer STRICTLY with JSON matching this TypeScript type:

{GAME_SCHEMA}

IMPORTANT:
- Return no text outside the JSON.
- Use only the categories "inaccuracy", "mistake", "blunder".
- Use only the types "tactic", "endgame", "opening", "strategy".
- Use only the levels "beginner", "intermediate", "advanced".
- Move numbers (moveNumber) must match the move numbers of the PGN exactly.

Here is the PGN:

{pgn}"""


def build_opponent_prompt(pgns: List[str]) -> str:
    payload = "\n\n".join(f"{PGN_SEPARATOR}\n{pgn}" for pgn in pgns)
    return f"""You are an experienced chess coach.

You receive several games in PGN format, all played by the SAME player.
Analyze the overall playing style, identify STRENGTHS and WEAKNESSES,
recurring errors, and propose interactive SIMULATION exercises.

For each exercise:
1. Pick ONE specific weakness to exploit (weaknessExploited).
2. Build a realistic FEN position (positionFen) that exposes it.
3. Give the best line (solution) in 3-5 moves, in SAN.
4. Give 3-5 candidate moves (moveVariants): 1-2 good ones (isBest: true) and
   2-3 typical bad ones (isBest: false), each with an explanation and the
   opponent's typical reply (opponentResponse).
5. List the moves this opponent typically plays in such positions
   (opponentMoves).

Answer ONLY with valid JSON matching this TypeScript type:

{OPPONENT_SCHEMA}

Here are the games, separated by '{PGN_SEPARATOR}':

{payload}"""
