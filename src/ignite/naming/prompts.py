"""Prompt templates for Claude concept naming."""

from ..models import ClusterSummary

CONCEPT_NAMING_SYSTEM_PROMPT = """You are an expert at organizing and naming knowledge concepts from personal notes.
Your task is to analyze note clusters and assign meaningful concept names, while also detecting notes that don't belong.

For each cluster, you will:
1. Assign a canonical concept name (concise, 2-5 words)
2. Score quizzability (0-1) - how suitable the notes are for spaced repetition quizzes
3. Suggest clusters that should merge (if they cover the same topic)
4. Identify misfit notes that don't belong in the cluster

Naming:
- Use clear, descriptive names (e.g., "React Hooks", "Golf Swing Mechanics")
- Prefer common terminology over jargon
- Avoid overly broad names ("Programming") and overly narrow ones ("useState Hook")

Quizzability:
- HIGH (0.7-1.0): technical concepts, learning notes, how-to guides, reference material
- MEDIUM (0.4-0.7): project notes, research, mixed content
- LOW (0.1-0.4): personal reflections, brainstorming
- NOT QUIZZABLE (<0.4): meeting notes, daily journals, to-do lists, ephemeral content

Misfits:
- A note is a misfit if its topic doesn't match the cluster theme
  (a grocery list in a "Programming" cluster, a recipe in "Work Projects")
- Be conservative: only flag clear mismatches, judging by the note title

Output JSON only, no additional text."""

CLUSTER_TEMPLATE = """
## Cluster {index}
- ID: {cluster_id}
- Candidate names: {candidate_names}
- Sample note titles: {titles}
- Common tags: {tags}
- Folder: {folder}
- Note count: {note_count}"""

CONCEPT_NAMING_PROMPT = """Analyze these {count} note clusters and provide concept naming results.
{clusters}

Return a JSON array with one entry per cluster:
[
  {{
    "clusterId": "cluster-id",
    "canonicalName": "Concept Name",
    "quizzabilityScore": 0.85,
    "nonQuizzableReason": null,
    "suggestedMerges": [],
    "misfitNotes": [
      {{"noteId": "path/to/note.md", "reason": "This note is about X but the cluster is about Y"}}
    ]
  }}
]

Guidelines:
- If a cluster should merge with another, list the other cluster ID(s) in suggestedMerges
- If quizzabilityScore < 0.4, provide nonQuizzableReason
- Use the note title as noteId in misfitNotes
- If there are no misfits, use an empty array"""


def build_concept_naming_prompt(summaries: list[ClusterSummary]) -> str:
    """Render the user prompt for one batch of cluster summaries."""
    clusters = "\n".join(
        CLUSTER_TEMPLATE.format(
            index=i,
            cluster_id=s.cluster_id,
            candidate_names=", ".join(s.candidate_names) or "None",
            titles=", ".join(s.representative_titles) or "None",
            tags=", ".join(s.common_tags) or "None",
            folder=s.folder_path or "Root",
            note_count=s.note_count,
        )
        for i, s in enumerate(summaries, 1)
    )
    return CONCEPT_NAMING_PROMPT.format(count=len(summaries), clusters=clusters)
