"""Offline walkthrough: analyze, edit, refine and assemble a prompt with demo data."""

from styledna import EditSession, GenerationSettings, assemble_prompt, bind
from styledna.collaborator import DemoCollaborator, plan_generate

collaborator = DemoCollaborator()

# Every EditSession method returns a *new* session; the original is never modified.
analysis = collaborator.analyze(b"reference image bytes", "style")
session = EditSession().with_image("demo.jpg", "/api/images/demo.jpg").with_analysis(analysis)

print("=== Variables ===")
for variable in analysis.variables:
    marker = "locked" if session.locks.get(variable.key) else "open"
    print(f"  [{marker:>6}] {variable.label}: {variable.suggested_value}")

# Edit a value and lock it so refinement leaves it alone.
session = session.with_value("subject", "an old lighthouse keeper").toggle_lock("subject")
print(f"\nChanges: {session.diff_summary()}")

refinement = collaborator.refine(b"reference image bytes", "style", session.locks, session.values)
session = session.apply_refinement(refinement)
print(f"Locked after refine: {session.locked_keys()}")
print(f"Subject kept: {session.values['subject']}")
print(f"Scene refined: {session.values['scene']}")

print("\n=== Bound template ===")
print(bind(analysis.prompt_template, session.values))

final_prompt = assemble_prompt(analysis.style_dna, session.values, "style+palette", session.negative_prompt)
print("\n=== Final prompt ===")
print(final_prompt)

plan = plan_generate(final_prompt, session.negative_prompt, GenerationSettings(aspect_ratio="16:9", seed="42"))
print("\n=== images.generate plan ===")
print(f"  Request size: {plan.request['size']}")
for warning in plan.warning_messages():
    print(f"  Warning: {warning}")
