"""
Narrative framework registry.

Eight fixed structures, each an ordered list of component slots plus guidance used when
presenting or editing a narrative: tagline, per-component prompts, best fit, and a short
example story.
"""
from typing import Dict, List, Optional


class ComponentDefinition:
    def __init__(self, name: str, label: str, description: str, prompt: str):
        self.name = name
        self.label = label
        self.description = description
        self.prompt = prompt  # help text for the person editing the story


class NarrativeFramework:
    def __init__(self, type: str, name: str, tagline: str, description: str, components: List[ComponentDefinition], best_for: List[str], not_ideal_for: List[str], example: Dict[str, object], recommend_when: Dict[str, List[str]]):
        self.type = type
        self.name = name
        self.tagline = tagline
        self.description = description
        self.components = components
        self.best_for = best_for
        self.not_ideal_for = not_ideal_for
        self.example = example  # {'context': str, 'components': {name: text}}
        self.recommend_when = recommend_when  # roles / interview_types / story_types

    @property
    def component_order(self) -> List[str]:
        return [c.name for c in self.components]

    def to_dict(self) -> Dict[str, object]:
        return {
            'type': self.type,
            'name': self.name,
            'tagline': self.tagline,
            'description': self.description,
            'component_order': self.component_order,
            'best_for': list(self.best_for),
            'not_ideal_for': list(self.not_ideal_for),
        }


def _c(name, label, description, prompt):
    return ComponentDefinition(name, label, description, prompt)


NARRATIVE_FRAMEWORKS: Dict[str, NarrativeFramework] = {
    'STAR': NarrativeFramework(
        type='STAR',
        name='STAR',
        tagline='The classic behavioral interview format',
        description='Situation-Task-Action-Result. The standard structure for behavioral interviews.',
        components=[
            _c('situation', 'Situation', 'The context and background', 'What was happening? What was the problem or opportunity?'),
            _c('task', 'Task', 'Your specific responsibility', 'What were you asked to do? What was your role?'),
            _c('action', 'Action', 'What you did', 'What specific steps did you take?'),
            _c('result', 'Result', 'The outcome and impact', 'What happened? Quantify with numbers if possible.'),
        ],
        best_for=['Behavioral interviews', 'Most interview scenarios', 'First-time interviewees'],
        not_ideal_for=['Executive presentations', 'Very technical deep-dives'],
        example={
            'context': 'Software engineer optimizing dashboard performance',
            'components': {
                'situation': 'Our analytics dashboard took 5+ seconds to load and daily active users dropped 15%.',
                'task': 'I was asked to bring load time under 1 second without losing functionality.',
                'action': 'I profiled the queries, fixed N+1 issues, added indexes and cached hot data.',
                'result': 'Load time went from 5s to 200ms and DAU recovered within 2 weeks.',
            },
        },
        recommend_when={
            'roles': ['Software Engineer', 'Product Manager', 'Designer', 'Data Analyst'],
            'interview_types': ['Behavioral', 'FAANG', 'General'],
            'story_types': ['Achievement', 'Problem-solving', 'Collaboration'],
        },
    ),
    'STARL': NarrativeFramework(
        type='STARL',
        name='STAR-L',
        tagline='STAR plus Learning for growth stories',
        description='STAR with an added Learning component. Shows self-awareness and a growth mindset.',
        components=[
            _c('situation', 'Situation', 'The context and background', 'What was happening? What was the challenge?'),
            _c('task', 'Task', 'Your specific responsibility', 'What were you trying to accomplish?'),
            _c('action', 'Action', 'What you did', 'What steps did you take?'),
            _c('result', 'Result', 'The outcome', 'What happened? Include both successes and setbacks.'),
            _c('learning', 'Learning', 'What you learned', 'What did you take away? How did this change your approach?'),
        ],
        best_for=['Failure/challenge questions', 'Growth-focused interviews', 'Manager roles'],
        not_ideal_for=['Quick introductions', 'Time-constrained responses'],
        example={
            'context': 'Tech lead who shipped a feature that caused an outage',
            'components': {
                'situation': 'We were rushing a payments feature out before a seasonal peak.',
                'task': 'As tech lead I had to deliver on time while keeping quality.',
                'action': 'I approved the release without a full load test to hit the date.',
                'result': 'The feature caused a 2-hour outage during the peak.',
                'learning': 'I now budget time for load testing on every payment flow release.',
            },
        },
        recommend_when={
            'roles': ['Tech Lead', 'Engineering Manager', 'Senior Engineer'],
            'interview_types': ['Behavioral', 'Leadership', 'Manager'],
            'story_types': ['Failure', 'Challenge', 'Growth', 'Conflict'],
        },
    ),
    'CAR': NarrativeFramework(
        type='CAR',
        name='CAR',
        tagline='Concise and challenge-focused',
        description='Challenge-Action-Result. A streamlined format focused on problem-solving.',
        components=[
            _c('challenge', 'Challenge', 'The problem you faced', 'What obstacle or challenge did you encounter?'),
            _c('action', 'Action', 'How you addressed it', 'What did you do to overcome the challenge?'),
            _c('result', 'Result', 'The outcome', 'What was the result of your actions?'),
        ],
        best_for=['Concise responses', 'Problem-solving stories', 'Technical interviews'],
        not_ideal_for=['Complex narratives', 'Stories requiring context'],
        example={
            'context': 'Developer fixing a critical production bug',
            'components': {
                'challenge': 'Database deadlocks were causing 500 errors for 10% of users.',
                'action': 'I traced the locking sequence and reordered the transactions.',
                'result': 'Deadlocks disappeared and the error rate dropped to 0.01%.',
            },
        },
        recommend_when={
            'roles': ['Software Engineer', 'DevOps', 'SRE'],
            'interview_types': ['Technical', 'Phone Screen', 'Quick'],
            'story_types': ['Bug fix', 'Debugging', 'Technical challenge'],
        },
    ),
    'PAR': NarrativeFramework(
        type='PAR',
        name='PAR',
        tagline='Problem-focused for technical roles',
        description='Problem-Action-Result. Like CAR, with the emphasis on defining the problem.',
        components=[
            _c('problem', 'Problem', 'The technical problem', 'What was the technical problem? Be specific about constraints.'),
            _c('action', 'Action', 'Your technical approach', 'What was your solution? Include tools and technologies.'),
            _c('result', 'Result', 'The measurable outcome', 'What metrics improved?'),
        ],
        best_for=['Engineering interviews', 'Technical problem-solving', 'System design discussions'],
        not_ideal_for=['Leadership stories', 'Collaboration narratives'],
        example={
            'context': 'Backend engineer scaling a service',
            'components': {
                'problem': 'Search topped out at 100 QPS ahead of a launch needing 10x.',
                'action': 'I sharded the index, added a cache layer and spread the service across zones.',
                'result': 'We served 2,000 QPS at P99 under 50ms with zero downtime at launch.',
            },
        },
        recommend_when={
            'roles': ['Software Engineer', 'Backend Engineer', 'Platform Engineer'],
            'interview_types': ['Technical', 'System Design', 'Architecture'],
            'story_types': ['Scaling', 'Performance', 'Infrastructure'],
        },
    ),
    'SAR': NarrativeFramework(
        type='SAR',
        name='SAR',
        tagline='Ultra-concise for quick responses',
        description='Situation-Action-Result. The most concise format.',
        components=[
            _c('situation', 'Situation', 'Brief context', 'Set the scene in one sentence.'),
            _c('action', 'Action', 'What you did', 'Describe your key actions concisely.'),
            _c('result', 'Result', 'The outcome', 'State the impact in one sentence.'),
        ],
        best_for=['Elevator pitches', 'Quick introductions', 'Time-limited responses'],
        not_ideal_for=['Complex achievements', 'Stories requiring task context'],
        example={
            'context': 'Quick intro at a networking event',
            'components': {
                'situation': 'Our mobile app had a 3-star rating due to crashes.',
                'action': 'I led the stability push and fixed the top 10 crash sources.',
                'result': 'The rating rose to 4.8 and crashes fell by 95%.',
            },
        },
        recommend_when={
            'roles': ['Any'],
            'interview_types': ['Networking', 'Phone Screen', 'Quick'],
            'story_types': ['Introduction', 'Highlight', 'Quick win'],
        },
    ),
    'SOAR': NarrativeFramework(
        type='SOAR',
        name='SOAR',
        tagline='Objective-driven for business impact',
        description='Situation-Objective-Action-Result. Ties the work to a measurable goal.',
        components=[
            _c('situation', 'Situation', 'The business context', 'What was the business situation or market context?'),
            _c('objective', 'Objective', 'The goal you set', 'What measurable goal were you driving toward?'),
            _c('action', 'Action', 'How you pursued it', 'What strategy and actions did you take?'),
            _c('result', 'Result', 'Business impact', 'What were the measurable results?'),
        ],
        best_for=['Product management', 'Business-focused interviews', 'Strategic roles'],
        not_ideal_for=['Pure technical discussions', 'Junior roles'],
        example={
            'context': 'Product manager launching a new feature',
            'components': {
                'situation': 'Retention was declining 5% month over month.',
                'objective': 'Raise 30-day retention by 10% within the quarter.',
                'action': 'I ran user research, designed a new onboarding flow and A/B tested it.',
                'result': '30-day retention improved 15%, beating the goal.',
            },
        },
        recommend_when={
            'roles': ['Product Manager', 'Program Manager', 'Business Analyst'],
            'interview_types': ['Product', 'Strategy', 'Business'],
            'story_types': ['Product launch', 'Business impact', 'Strategy'],
        },
    ),
    'SHARE': NarrativeFramework(
        type='SHARE',
        name='SHARE',
        tagline='Leadership stories with hindsight',
        description='Situation-Hindsight-Action-Result-Example. Emphasizes reflection and a concrete instance.',
        components=[
            _c('situation', 'Situation', 'The context', 'What was the team or organizational situation?'),
            _c('hindsight', 'Hindsight', 'What you see differently now', 'Looking back, what insight shaped how you acted?'),
            _c('action', 'Action', 'What you did', 'What actions did you take?'),
            _c('result', 'Result', 'The outcome', 'What were the results of your actions?'),
            _c('example', 'Example', 'A concrete instance', 'Give one specific moment that illustrates the story.'),
        ],
        best_for=['Leadership interviews', 'Collaboration stories', 'Mentorship examples'],
        not_ideal_for=['Individual contributor stories', 'Quick responses'],
        example={
            'context': 'Engineering manager improving team culture',
            'components': {
                'situation': 'The team had low morale after a failed project.',
                'hindsight': 'Looking back, our postmortems were blame-focused and made people afraid to fail.',
                'action': 'I introduced blameless postmortems and shared my own mistakes openly.',
                'result': 'Experimentation tripled and two features came out of risky bets.',
                'example': 'One engineer proposed a caching approach everyone called too risky; it cut costs by 40%.',
            },
        },
        recommend_when={
            'roles': ['Engineering Manager', 'Director', 'VP'],
            'interview_types': ['Leadership', 'Manager', 'Culture'],
            'story_types': ['Team building', 'Culture change', 'Mentorship'],
        },
    ),
    'CARL': NarrativeFramework(
        type='CARL',
        name='CARL',
        tagline='Accountability-focused for tough questions',
        description='Context-Action-Result-Learning. For failure and accountability questions.',
        components=[
            _c('context', 'Context', 'The circumstances', 'What was the situation? What pressures or constraints existed?'),
            _c('action', 'Action', "What you did (or didn't do)", 'What actions did you take? Be honest about mistakes.'),
            _c('result', 'Result', 'What happened', 'What was the outcome? Include negative impacts.'),
            _c('learning', 'Learning', 'What you learned', 'How have you changed your approach?'),
        ],
        best_for=['Failure questions', '"Tell me about a mistake"', 'Accountability stories'],
        not_ideal_for=['Success stories', 'Technical deep-dives'],
        example={
            'context': 'Developer who caused a data incident',
            'components': {
                'context': 'I was migrating user data to a new schema under deadline pressure.',
                'action': 'I ran the migration without a backup or a dry run.',
                'result': 'A bug corrupted 5% of profiles and recovery took 3 days.',
                'learning': 'I never run data migrations without backups, dry runs and review now.',
            },
        },
        recommend_when={
            'roles': ['Any'],
            'interview_types': ['Behavioral', 'Amazon Leadership Principles'],
            'story_types': ['Failure', 'Mistake', 'Accountability', 'Growth'],
        },
    ),
}

FRAMEWORK_TYPES = tuple(NARRATIVE_FRAMEWORKS.keys())

# common interview prompts -> best-fitting framework
QUESTION_TO_FRAMEWORK: Dict[str, str] = {
    'Tell me about yourself': 'SAR',
    'Tell me about a time you failed': 'CARL',
    'Tell me about a mistake': 'CARL',
    'Tell me about a challenge': 'CAR',
    'Tell me about a technical problem': 'PAR',
    'Tell me about a time you led': 'SHARE',
    'Tell me about a time you influenced': 'SOAR',
    'Walk me through a project': 'STAR',
    'Tell me about an achievement': 'STAR',
    'What did you learn from': 'STARL',
}


def get_all_frameworks() -> List[NarrativeFramework]:
    return list(NARRATIVE_FRAMEWORKS.values())


def get_framework(framework_type: str) -> NarrativeFramework:
    """Look up a framework by type (case-insensitive). Unknown types raise ValueError."""
    key = (framework_type or '').strip().upper()
    if key not in NARRATIVE_FRAMEWORKS:
        raise ValueError(f"Unknown framework '{framework_type}'. Expected one of: {', '.join(FRAMEWORK_TYPES)}")
    return NARRATIVE_FRAMEWORKS[key]


def recommend_frameworks(role: Optional[str] = None, interview_type: Optional[str] = None, story_type: Optional[str] = None) -> List[str]:
    """
    Rank frameworks for a context. Role match scores 3 (substring either way), interview type
    and story type 2 each. Only frameworks with a positive score are returned, best first;
    ties keep registry order.
    """
    scored = []
    for ftype, fw in NARRATIVE_FRAMEWORKS.items():
        score = 0
        if role:
            r = role.lower()
            if any(x.lower() in r or r in x.lower() for x in fw.recommend_when['roles']):
                score += 3
        if interview_type:
            t = interview_type.lower()
            if any(t in x.lower() for x in fw.recommend_when['interview_types']):
                score += 2
        if story_type:
            s = story_type.lower()
            if any(s in x.lower() for x in fw.recommend_when['story_types']):
                score += 2
        scored.append((ftype, score))
    scored.sort(key=lambda item: item[1], reverse=True)
    return [ftype for ftype, score in scored if score > 0]


def framework_for_question(question: str) -> Optional[str]:
    """Framework for an interview question, matching on the known prompt prefixes."""
    q = (question or '').strip().lower()
    for prompt, ftype in QUESTION_TO_FRAMEWORK.items():
        if q.startswith(prompt.lower()):
            return ftype
    return None
