"""
Jira issue key patterns.

v1 is the historical key regex ([A-Z][A-Z0-9]+-\\d+); it accepted single-letter projects and
keys glued to surrounding words. v2 bounds the project key to 2-10 characters on word
boundaries and supersedes v1.
"""
from patterns.registry import RefPattern, PatternExample

jira_ticket_v1 = RefPattern(
    id='jira-ticket-v1',
    name='Jira Ticket (legacy)',
    version=1,
    description='Jira issue keys such as PROJ-123',
    regex=r'[A-Z][A-Z0-9]+-\d+',
    tool_type='jira',
    confidence='high',
    normalize=lambda m: m.group(0),
    examples=[
        PatternExample('Fixed PROJ-123 and addressed PROJ-456', 'PROJ-123'),
    ],
    negative_examples=[
        'lowercase proj-123 is not a key',
    ],
)

jira_ticket_v2 = RefPattern(
    id='jira-ticket-v2',
    name='Jira Ticket',
    version=2,
    description='Jira issue keys with a 2-10 character project key',
    regex=r'\b([A-Z][A-Z0-9]{1,9})-(\d+)\b',
    tool_type='jira',
    confidence='high',
    normalize=lambda m: f"{m.group(1)}-{m.group(2)}",
    supersedes='jira-ticket-v1',
    examples=[
        PatternExample('Fixed bug in AUTH-123', 'AUTH-123'),
        PatternExample('AB-1 is valid', 'AB-1'),
        PatternExample('ABCDEFGHIJ-12345 is valid', 'ABCDEFGHIJ-12345'),
        PatternExample('{"key": "BUG-999", "summary": "Crash"}', 'BUG-999', source='jira-rawdata'),
        PatternExample('[CORE-456] Migrate auth service', 'CORE-456', source='github'),
    ],
    negative_examples=[
        'X-123 should not match',
        'lowercase auth-123 is not a key',
        'Version V2.0.0-beta released',
        'ABCDEFGHIJK-1 has an 11 character project',
    ],
)

PATTERNS = [jira_ticket_v1, jira_ticket_v2]
