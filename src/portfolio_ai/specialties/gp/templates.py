"""GP artefact templates and the entry-type to template mapping.

Section weights within each template sum to 1.0; the catalog rejects the
specialty at registration otherwise.
"""

from __future__ import annotations

from typing import Optional

from portfolio_ai.specialties.models import ArtefactTemplate, TemplateSection, WordCountRange


def _section(
    id: str,
    label: str,
    weight: float,
    description: str,
    prompt_hint: str,
    question: Optional[str],
    required: bool = True,
) -> TemplateSection:
    return TemplateSection(
        id=id,
        label=label,
        required=required,
        description=description,
        prompt_hint=prompt_hint,
        extraction_question=question,
        weight=weight,
    )


# Used by CLINICAL_CASE_REVIEW and OUT_OF_HOURS
CCR_TEMPLATE = ArtefactTemplate(
    id="CCR_TEMPLATE",
    name="Clinical Case Review",
    word_count_range=WordCountRange(min=150, max=300),
    sections=(
        _section(
            "presentation", "Clinical Presentation", 0.15,
            "Patient demographics (anonymised), presenting complaint, relevant history, "
            "context of consultation.",
            "Describe the clinical scenario concisely. Include age, gender, setting, and "
            "presenting complaint. Keep anonymised.",
            "Can you describe the patient and what they presented with?",
        ),
        _section(
            "clinical_findings", "Clinical Findings", 0.1,
            "Examination findings, investigation results, observations.",
            "Summarise relevant positive and negative findings.",
            "What did you find on examination or investigation?",
            required=False,
        ),
        _section(
            "clinical_reasoning", "Clinical Reasoning", 0.2,
            "Differential diagnosis considered, why the working diagnosis was reached, "
            "what was considered and ruled out.",
            "Explain the thought process behind the diagnosis. Include what was considered "
            "and why alternatives were excluded.",
            "What differentials did you consider, and what led you to your working diagnosis?",
        ),
        _section(
            "management", "Management & Actions", 0.15,
            "Treatment given, investigations ordered, referrals made, safety-netting advice, "
            "follow-up plan.",
            "Detail the management plan and the rationale behind each decision.",
            "What management plan did you put in place?",
        ),
        _section(
            "outcome", "Patient Outcome", 0.1,
            "What happened to the patient, follow-up results, resolution or ongoing plan.",
            "Describe how the patient responded and any follow-up.",
            "What was the outcome for this patient?",
        ),
        _section(
            "reflection", "Reflection & Learning", 0.25,
            "What went well, what could be improved, what was learned, how this changes "
            "future practice. Should demonstrate critical thinking, not just description.",
            "Reflect on personal learning and impact on future practice. Address: What will "
            "I maintain, improve, or stop?",
            "What did you learn from this case, and would you do anything differently?",
        ),
        _section(
            "ethical_legal", "Ethical / Legal Considerations", 0.05,
            "Consent, capacity, confidentiality, safeguarding concerns if relevant.",
            "Note any ethical, legal, or safeguarding dimensions if applicable.",
            None,
            required=False,
        ),
    ),
)

SEA_TEMPLATE = ArtefactTemplate(
    id="SEA_TEMPLATE",
    name="Significant Event Analysis",
    word_count_range=WordCountRange(min=300, max=500),
    sections=(
        _section(
            "event_description", "What Happened", 0.15,
            "Factual, chronological, anonymised account of the event. Who was involved, "
            "what occurred, when and where.",
            "Describe the event objectively and chronologically without judgment. Keep anonymised.",
            "Can you walk me through exactly what happened?",
        ),
        _section(
            "what_went_well", "What Went Well", 0.1,
            "Aspects of the situation that were handled correctly. Good practice that should "
            "be maintained.",
            "Identify positive aspects: what was done correctly, what worked.",
            "Was there anything that was handled well during this event?",
        ),
        _section(
            "what_could_improve", "What Could Have Been Done Differently", 0.15,
            "Honest assessment of where things went wrong or could have been better. "
            "Specific, not vague.",
            "Describe specific actions or decisions that could have been different. Avoid "
            "vague generalisations.",
            "Looking back, is there anything you or the team could have done differently?",
        ),
        _section(
            "root_cause", "Why It Happened", 0.2,
            "Root cause analysis: system factors, human factors, communication breakdown, "
            "resource issues. Not about blaming individuals.",
            "Analyse the contributing factors. Consider system issues, communication, "
            "workload, knowledge gaps. Avoid individual blame.",
            "What do you think contributed to this happening? Were there any system or team factors?",
        ),
        _section(
            "impact", "Impact", 0.1,
            "Effect on the patient, the trainee, the team, and/or the wider system.",
            "Describe the consequences honestly, for the patient, yourself, and the team.",
            "What was the impact on the patient and/or your team?",
        ),
        _section(
            "changes_made", "Changes Made", 0.2,
            "Concrete actions taken or proposed: protocols changed, guidelines reviewed, team "
            "briefings, new processes. Must be specific.",
            "Detail specific changes implemented or planned. Include who is responsible and timelines.",
            "What has been done or changed as a result of this event?",
        ),
        _section(
            "personal_learning", "Personal Learning", 0.1,
            "What the trainee personally took away. How it shapes their practice going "
            "forward. Link to professional development.",
            "Connect to personal professional development. Address: What will I maintain, "
            "improve, or stop?",
            "What did you personally take away from this experience?",
        ),
    ),
)

# Used by LEARNING_EVENT and ACADEMIC_ACTIVITY
LEA_TEMPLATE = ArtefactTemplate(
    id="LEA_TEMPLATE",
    name="Learning Event Analysis",
    word_count_range=WordCountRange(min=200, max=400),
    sections=(
        _section(
            "event_description", "What Happened", 0.15,
            "Description of the event or learning opportunity. What occurred, who was "
            "involved, the setting.",
            "Describe the event or learning opportunity concisely. Include context and setting.",
            "Can you describe what happened or what the learning opportunity was?",
        ),
        _section(
            "learning_opportunity", "Why This Was a Learning Opportunity", 0.2,
            "What made this event notable. What could have gone differently. Why it matters "
            "for professional development.",
            "Explain why this event is significant for learning. What could have gone wrong, "
            "or what insight did it offer?",
            "What made this event stand out as a learning opportunity?",
        ),
        _section(
            "what_learned", "What Was Learned", 0.25,
            "Specific knowledge, skills, or attitudes gained. Link to evidence or guidelines "
            "where relevant.",
            "Describe concrete learning points. Reference relevant guidelines or evidence if applicable.",
            "What specifically did you learn from this?",
        ),
        _section(
            "application", "Application to Practice", 0.25,
            "How this learning will change or has changed the trainee's practice. Specific, "
            "not generic.",
            "Describe how this learning applies to your day-to-day practice. Be specific "
            "about what will change.",
            "How will this change your practice going forward?",
        ),
        _section(
            "team_sharing", "Team Sharing", 0.05,
            "Whether and how the learning was shared with the team. Evidence of "
            "collaborative learning.",
            "Note if and how this learning was shared with colleagues or the wider team.",
            "Did you share this learning with your team?",
            required=False,
        ),
        _section(
            "evidence_of_change", "Evidence of Change", 0.1,
            "Concrete examples showing the learning has been applied. Linked entries, "
            "follow-up cases.",
            "If applicable, describe specific examples where you've applied this learning since.",
            "Can you give an example of how you've applied this learning since?",
            required=False,
        ),
    ),
)

FEEDBACK_TEMPLATE = ArtefactTemplate(
    id="FEEDBACK_TEMPLATE",
    name="Reflection on Feedback",
    word_count_range=WordCountRange(min=200, max=400),
    sections=(
        _section(
            "feedback_source", "Feedback Source", 0.1,
            "What type of feedback was received (MSF, PSQ, exam results, informal feedback) and when.",
            "Identify the feedback source and context. Include when it was received.",
            "What feedback did you receive, and from what source (MSF, PSQ, exam, etc.)?",
        ),
        _section(
            "feedback_summary", "Key Findings", 0.2,
            "Summary of the main themes, scores, or comments. Both positive and areas for development.",
            "Summarise the key themes honestly. Include strengths as well as areas for improvement.",
            "What were the main points or themes from the feedback?",
        ),
        _section(
            "emotional_response", "Initial Response", 0.1,
            "How the trainee felt receiving the feedback. Demonstrates self-awareness and "
            "emotional intelligence.",
            "Reflect honestly on your initial reaction to the feedback.",
            "How did you feel when you first received this feedback?",
            required=False,
        ),
        _section(
            "analysis", "Analysis & Interpretation", 0.25,
            "What the feedback means in the context of the trainee's development. Areas of "
            "agreement/disagreement.",
            "Analyse what the feedback tells you about your practice. Where do you agree or "
            "disagree, and why?",
            "Do you agree with the feedback? What does it tell you about your development?",
        ),
        _section(
            "action_plan", "Actions Taken or Planned", 0.25,
            "Specific, concrete steps taken or planned in response to the feedback. Should "
            "be SMART where possible.",
            "Detail specific actions you have taken or plan to take in response. Be concrete "
            "and time-bound.",
            "What have you done or plan to do in response to this feedback?",
        ),
        _section(
            "follow_up", "Impact & Follow-up", 0.1,
            "Evidence that actions have been taken and their effect. Linked entries or "
            "subsequent feedback.",
            "If applicable, describe the impact of changes you've made since receiving the feedback.",
            "Have you noticed any changes since acting on this feedback?",
            required=False,
        ),
    ),
)

LEADERSHIP_TEMPLATE = ArtefactTemplate(
    id="LEADERSHIP_TEMPLATE",
    name="Leadership Activity",
    word_count_range=WordCountRange(min=200, max=400),
    sections=(
        _section(
            "activity_description", "Activity Description", 0.15,
            "What the leadership activity was, the context, the trainee's specific role.",
            "Describe the activity and your specific role within it. Include context and setting.",
            "What was the leadership activity, and what was your role?",
        ),
        _section(
            "rationale", "Rationale", 0.1,
            "Why this activity was chosen or undertaken. What problem or opportunity it addressed.",
            "Explain why this activity was needed and why you took it on.",
            "Why did you undertake this activity? What need or opportunity did it address?",
        ),
        _section(
            "approach", "Approach & Process", 0.2,
            "How the trainee approached the activity. Steps taken, people involved, "
            "challenges encountered.",
            "Describe your approach step by step. How did you engage others? What challenges arose?",
            "How did you go about it? Who was involved and what challenges did you face?",
        ),
        _section(
            "outcomes", "Outcomes", 0.15,
            "What was achieved. Impact on the team, patients, or system. Include both "
            "successes and limitations.",
            "Describe what was achieved and any measurable impact. Be honest about limitations.",
            "What was the outcome? What impact did it have?",
        ),
        _section(
            "leadership_skills", "Leadership Skills Demonstrated", 0.15,
            "Specific leadership competencies demonstrated: communication, delegation, "
            "decision-making, conflict resolution, change management, teamwork.",
            "Identify which leadership skills you used and how. Link to specific examples "
            "from the activity.",
            "What leadership skills did you draw on during this activity?",
        ),
        _section(
            "reflection", "Reflection & Learning", 0.2,
            "What worked, what didn't, what the trainee learned about themselves as a leader.",
            "Reflect on your leadership approach. What would you do differently? How will "
            "this shape your future practice as a leader?",
            "What did you learn about yourself as a leader?",
        ),
        _section(
            "wellbeing", "Team Wellbeing", 0.05,
            "How the activity considered or contributed to colleague wellbeing.",
            "If relevant, note how the activity addressed team wellbeing or morale.",
            None,
            required=False,
        ),
    ),
)

QIP_TEMPLATE = ArtefactTemplate(
    id="QIP_TEMPLATE",
    name="Quality Improvement Project",
    word_count_range=WordCountRange(min=500, max=800),
    sections=(
        _section(
            "rationale", "Rationale & Problem Statement", 0.15,
            "Why this topic was chosen. Identified need in the training practice. Brief "
            "summary of current evidence/guidance.",
            "Describe the problem identified and why it matters. Reference relevant "
            "guidelines or evidence.",
            "What problem did you identify, and why did it matter?",
        ),
        _section(
            "aims", "Aims & Objectives", 0.1,
            "SMART aims for the project. What improvement was targeted and how it would be measured.",
            "State the project aims using SMART criteria (Specific, Measurable, Achievable, "
            "Relevant, Time-defined).",
            "What were you trying to achieve? How would you measure success?",
        ),
        _section(
            "methodology", "Methodology", 0.15,
            "How the project was conducted. Data collection method, sample size, PDSA cycles "
            "used. At least two PDSA cycles expected.",
            "Describe your methodology including data collection approach and PDSA cycles.",
            "How did you go about the project? What methodology did you use?",
        ),
        _section(
            "stakeholders", "Team & Stakeholder Engagement", 0.1,
            "Who was involved and how they were engaged. Collaborative elements vs personal "
            "contribution.",
            "Describe who was involved, how you engaged stakeholders, and what was "
            "collaborative vs your personal contribution.",
            "Who did you work with on this, and how did you engage them?",
        ),
        _section(
            "results", "Results & Data", 0.15,
            "What the data showed. Both quantitative and qualitative findings.",
            "Present the results clearly. Include key data points and trends. Note both "
            "improvements and areas that didn't change.",
            "What did your data show?",
        ),
        _section(
            "changes", "Changes Implemented", 0.1,
            "What changes were made based on the data. How they were embedded in practice.",
            "Describe specific changes made and how they were embedded in ongoing practice.",
            "What changes were made as a result of your findings?",
        ),
        _section(
            "sustainability", "Sustainability", 0.05,
            "How changes will be maintained after the project ends. Who is responsible.",
            "Describe how the improvements will be sustained. Who will maintain oversight?",
            "How will these changes be maintained going forward?",
        ),
        _section(
            "reflection", "Reflection & Learning", 0.2,
            "What the trainee learned about improvement methodology, working with teams, "
            "and their own development.",
            "Reflect on the QI process itself: what worked, what you'd change, and what you "
            "learned about leading improvement.",
            "What did you learn about the improvement process? What would you do differently?",
        ),
    ),
)

QIA_TEMPLATE = ArtefactTemplate(
    id="QIA_TEMPLATE",
    name="Quality Improvement Activity",
    word_count_range=WordCountRange(min=200, max=400),
    sections=(
        _section(
            "title_context", "Title & Context", 0.15,
            "What the activity was, the setting, and why it was identified as an "
            "improvement opportunity.",
            "Describe the activity and the context that prompted it.",
            "What was the quality improvement activity, and what prompted it?",
        ),
        _section(
            "aims", "What Were You Trying to Accomplish", 0.15,
            "The specific goal of the activity. What improvement was targeted.",
            "State clearly what you were trying to improve and why.",
            "What were you trying to achieve?",
        ),
        _section(
            "engagement", "How Did You Engage With Others", 0.15,
            "Who was involved in planning and delivery. How the trainee collaborated with the team.",
            "Describe how you involved others in planning and carrying out the activity.",
            "Who else was involved, and how did you work together?",
        ),
        _section(
            "changes", "What Changes Have Taken Place", 0.3,
            "What was actually done. What improvements resulted. Include evidence of impact "
            "where possible.",
            "Describe the changes that were implemented and their effect. Include evidence "
            "if available.",
            "What changes were made, and what was the result?",
        ),
        _section(
            "reflection", "Reflection: Maintain, Improve, or Stop", 0.25,
            "What worked well (maintain), what could be better (improve), what should be stopped.",
            "Reflect using the framework: What will I maintain, improve, or stop?",
            "Reflecting on this activity, what would you maintain, improve, or stop?",
        ),
    ),
)

PRESCRIBING_TEMPLATE = ArtefactTemplate(
    id="PRESCRIBING_TEMPLATE",
    name="Prescribing Assessment",
    word_count_range=WordCountRange(min=200, max=400),
    sections=(
        _section(
            "prescribing_context", "Prescribing Context", 0.1,
            "The scope of the review: how many prescriptions, which clinical setting, what period.",
            "Describe the prescribing review context: how many prescriptions, over what "
            "period, in what setting.",
            "Can you describe the scope of your prescribing review?",
        ),
        _section(
            "patterns_identified", "Patterns Identified", 0.15,
            "Key patterns in prescribing: common drug classes, frequent clinical scenarios, "
            "any habits noticed.",
            "Summarise the main patterns in your prescribing. What drug classes and clinical "
            "scenarios came up most?",
            "What patterns did you notice in your prescribing?",
        ),
        _section(
            "errors_near_misses", "Errors & Near-Misses", 0.2,
            "Any prescribing errors or near-misses identified in the review. Honest self-assessment.",
            "Describe any errors or near-misses identified. Be specific about what happened and why.",
            "Did you identify any prescribing errors or near-misses?",
        ),
        _section(
            "proficiencies_assessment", "Proficiencies Self-Assessment", 0.2,
            "Assessment against GP prescribing proficiencies: assessing risks/benefits, "
            "guideline adherence, antimicrobial stewardship, patient counselling, monitoring.",
            "Reflect on your performance against the prescribing proficiencies. Where are "
            "you strong? Where do you need development?",
            "How do you assess yourself against the GP prescribing proficiencies?",
        ),
        _section(
            "guidelines_adherence", "Guideline Adherence", 0.1,
            "How well prescribing aligns with NICE/BNF/local guidelines. Any deviations and "
            "justification.",
            "Note how your prescribing aligns with relevant guidelines. Explain any justified "
            "deviations.",
            "How well did your prescribing align with guidelines?",
            required=False,
        ),
        _section(
            "reflection", "Reflection & Learning", 0.15,
            "What the trainee learned about their prescribing practice. Strengths and areas "
            "for development.",
            "Reflect on your prescribing practice overall. What are your strengths? What "
            "needs development?",
            "What did you learn about your prescribing?",
        ),
        _section(
            "development_plan", "Development Plan", 0.1,
            "Specific actions to improve prescribing. May include a Prescribing PDP if needed.",
            "Detail specific actions to improve your prescribing. Make them concrete and time-bound.",
            "What specific steps will you take to improve your prescribing?",
        ),
    ),
)

GP_TEMPLATES: dict[str, ArtefactTemplate] = {
    t.id: t
    for t in (
        CCR_TEMPLATE,
        SEA_TEMPLATE,
        LEA_TEMPLATE,
        FEEDBACK_TEMPLATE,
        LEADERSHIP_TEMPLATE,
        QIP_TEMPLATE,
        QIA_TEMPLATE,
        PRESCRIBING_TEMPLATE,
    )
}

GP_ENTRY_TYPE_TO_TEMPLATE: dict[str, str] = {
    "CLINICAL_CASE_REVIEW": "CCR_TEMPLATE",
    "SIGNIFICANT_EVENT": "SEA_TEMPLATE",
    "LEARNING_EVENT": "LEA_TEMPLATE",
    "FEEDBACK_REFLECTION": "FEEDBACK_TEMPLATE",
    "LEADERSHIP_ACTIVITY": "LEADERSHIP_TEMPLATE",
    "ACADEMIC_ACTIVITY": "LEA_TEMPLATE",
    "OUT_OF_HOURS": "CCR_TEMPLATE",
    "QI_PROJECT": "QIP_TEMPLATE",
    "QI_ACTIVITY": "QIA_TEMPLATE",
    "PRESCRIBING": "PRESCRIBING_TEMPLATE",
}
