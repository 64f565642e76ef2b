"""Analyze a local image with the OpenAI collaborator and generate a variation.

Requirements:
    pip install styledna
    export OPENAI_API_KEY=sk-...

Usage:
    python examples/openai_analyze.py path/to/reference.png
"""

import sys
from pathlib import Path

from openai import OpenAI

from styledna import GenerationSettings, assemble_prompt
from styledna.collaborator import OpenAICollaborator
from styledna.stores import media_type_for

image_path = Path(sys.argv[1])
collaborator = OpenAICollaborator(OpenAI())

analysis = collaborator.analyze(image_path.read_bytes(), "style+palette", media_type=media_type_for(image_path.name))
print(f"Style DNA: {analysis.style_dna}")
for variable in analysis.variables:
    print(f"  {variable.key} ({variable.confidence:.0%}): {variable.suggested_value}")
for warning in analysis.warnings:
    print(f"  Warning: {warning}")

values = analysis.suggested_values()
final_prompt = assemble_prompt(analysis.style_dna, values, "style+palette", analysis.negative_prompt)
artwork = collaborator.generate(
    final_prompt,
    analysis.negative_prompt,
    GenerationSettings(aspect_ratio=analysis.recommended_settings.aspect_ratio),
)
print(f"\nGenerated: {artwork.image_url}")
print(f"Revised prompt: {artwork.revised_prompt}")
