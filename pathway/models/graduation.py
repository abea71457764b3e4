"""
The ten steps a mentee completes before graduation approval.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GraduationStep:
    id: str
    title: str
    description: str
    order: int

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "description": self.description, "order": self.order}


GRADUATION_STEPS: tuple[GraduationStep, ...] = (
    GraduationStep("step_1", "Complete Initial Contact with Mentor",
                   "Successfully complete initial meeting and establish communication with assigned mentor", 1),
    GraduationStep("step_2", "Establish Clear Goals",
                   "Work with mentor to define specific, measurable goals for the mentorship period", 2),
    GraduationStep("step_3", "Attend Weekly Check-ins",
                   "Maintain regular weekly communication with mentor for at least 4 consecutive weeks", 3),
    GraduationStep("step_4", "Complete Job Readiness Training",
                   "Participate in job readiness workshops or training sessions", 4),
    GraduationStep("step_5", "Develop Resume and Cover Letter",
                   "Create professional resume and cover letter with mentor guidance", 5),
    GraduationStep("step_6", "Complete Job Applications",
                   "Submit at least 5 job applications or pursue employment opportunities", 6),
    GraduationStep("step_7", "Establish Stable Housing",
                   "Secure and maintain stable housing arrangement", 7),
    GraduationStep("step_8", "Build Support Network",
                   "Establish connections with community resources and support systems", 8),
    GraduationStep("step_9", "Demonstrate Progress Toward Goals",
                   "Show measurable progress on established goals over 3+ months", 9),
    GraduationStep("step_10", "Complete Final Evaluation",
                   "Successfully complete final evaluation with mentor and program administrator", 10),
)

_STEPS_BY_ID = {step.id: step for step in GRADUATION_STEPS}


def get_graduation_step(step_id: str) -> GraduationStep | None:
    return _STEPS_BY_ID.get(step_id)


def is_known_step(step_id: str) -> bool:
    return step_id in _STEPS_BY_ID


def graduation_progress(completed_steps) -> int:
    """Percentage of known steps completed, rounded to the nearest integer."""
    done = {s for s in completed_steps if s in _STEPS_BY_ID}
    if not done:
        return 0
    return round(len(done) / len(GRADUATION_STEPS) * 100)


def is_ready_for_graduation(completed_steps) -> bool:
    return {s for s in completed_steps if s in _STEPS_BY_ID} == set(_STEPS_BY_ID)
