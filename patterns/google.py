"""
Google Workspace patterns.

URL forms:
- Docs / Sheets / Slides: docs.google.com/{document,spreadsheets,presentation}/d/<id>
- Drive: drive.google.com/file/d/<id>, drive.google.com/drive/folders/<id>
- Calendar: calendar.google.com/calendar/event?eid=<id>, .../r/eventedit/<id>
- Meet: meet.google.com/<abc-defg-hij>

Raw data forms match "documentId" / "meetCode" fields in JSON-serialized API payloads.
Those are medium confidence since they parse JSON as text.
"""
from patterns.registry import RefPattern, PatternExample

# Drive ids are at least 25 characters; shorter tokens are usually path fragments
_DRIVE_ID = r'([a-zA-Z0-9_-]{25,})'
_MEET_CODE = r'([a-z]{3,4}-[a-z]{3,4}-[a-z]{3,4})'

_SAMPLE_ID = '1BxiMVs0XRA5nFMdKvBdBZjgmUUqptlbs74OgvE2upms'
_SAMPLE_ID_2 = '1AbC123_defGHI456-jklMNOpqrs'


def _prefixed(prefix: str, lower: bool = False):
    def normalize(m):
        value = m.group(1)
        return f"{prefix}:{value.lower() if lower else value}"
    return normalize


google_docs = RefPattern(
    id='google-docs-v1',
    name='Google Docs',
    description='Google Docs document ids from URLs',
    regex=r'docs\.google\.com/document/d/' + _DRIVE_ID,
    tool_type='google',
    confidence='high',
    normalize=_prefixed('gdoc'),
    examples=[
        PatternExample(f'https://docs.google.com/document/d/{_SAMPLE_ID}/edit', f'gdoc:{_SAMPLE_ID}'),
        PatternExample(f'Design doc: https://docs.google.com/document/d/{_SAMPLE_ID_2}/edit#heading=h.xyz', f'gdoc:{_SAMPLE_ID_2}', source='jira'),
        PatternExample('https://docs.google.com/document/d/1234567890abcdefghijklmno/preview', 'gdoc:1234567890abcdefghijklmno'),
    ],
    negative_examples=[
        'https://docs.google.com/forms/d/123',
        'https://docs.google.com/document/u/0/',
    ],
)

google_sheets = RefPattern(
    id='google-sheets-v1',
    name='Google Sheets',
    description='Google Sheets spreadsheet ids from URLs',
    regex=r'docs\.google\.com/spreadsheets/d/' + _DRIVE_ID,
    tool_type='google',
    confidence='high',
    normalize=_prefixed('gsheet'),
    examples=[
        PatternExample(f'https://docs.google.com/spreadsheets/d/{_SAMPLE_ID}/edit', f'gsheet:{_SAMPLE_ID}'),
        PatternExample(f'https://docs.google.com/spreadsheets/d/{_SAMPLE_ID_2}/edit#gid=0', f'gsheet:{_SAMPLE_ID_2}', source='jira'),
    ],
    negative_examples=[
        'https://docs.google.com/spreadsheets/',
    ],
)

google_slides = RefPattern(
    id='google-slides-v1',
    name='Google Slides',
    description='Google Slides presentation ids from URLs',
    regex=r'docs\.google\.com/presentation/d/' + _DRIVE_ID,
    tool_type='google',
    confidence='high',
    normalize=_prefixed('gslides'),
    examples=[
        PatternExample(f'https://docs.google.com/presentation/d/{_SAMPLE_ID}/edit', f'gslides:{_SAMPLE_ID}'),
        PatternExample(f'Deck: https://docs.google.com/presentation/d/{_SAMPLE_ID_2}/edit#slide=id.g123', f'gslides:{_SAMPLE_ID_2}', source='outlook'),
    ],
    negative_examples=[
        'https://docs.google.com/presentation/',
    ],
)

google_drive_file = RefPattern(
    id='google-drive-file-v1',
    name='Google Drive File',
    description='Google Drive file ids from URLs',
    regex=r'drive\.google\.com/file/d/' + _DRIVE_ID,
    tool_type='google',
    confidence='high',
    normalize=_prefixed('gdrive'),
    examples=[
        PatternExample(f'https://drive.google.com/file/d/{_SAMPLE_ID}/view', f'gdrive:{_SAMPLE_ID}'),
        PatternExample(f'Recording: https://drive.google.com/file/d/{_SAMPLE_ID_2}/view?usp=sharing', f'gdrive:{_SAMPLE_ID_2}', source='outlook'),
    ],
    negative_examples=[
        'https://drive.google.com/drive/my-drive',
    ],
)

google_drive_folder = RefPattern(
    id='google-drive-folder-v1',
    name='Google Drive Folder',
    description='Google Drive folder ids from URLs',
    regex=r'drive\.google\.com/drive/folders/' + _DRIVE_ID,
    tool_type='google',
    confidence='high',
    normalize=_prefixed('gfolder'),
    examples=[
        PatternExample(f'https://drive.google.com/drive/folders/{_SAMPLE_ID}', f'gfolder:{_SAMPLE_ID}'),
        PatternExample(f'Project files: https://drive.google.com/drive/folders/{_SAMPLE_ID_2}?usp=drive_link', f'gfolder:{_SAMPLE_ID_2}', source='confluence'),
    ],
    negative_examples=[
        'https://drive.google.com/drive/my-drive',
    ],
)

google_meet = RefPattern(
    id='google-meet-v1',
    name='Google Meet',
    description='Google Meet meeting codes from URLs',
    regex=r'(?i)meet\.google\.com/' + _MEET_CODE,
    tool_type='google',
    confidence='high',
    normalize=_prefixed('gmeet', lower=True),
    examples=[
        PatternExample('https://meet.google.com/abc-defg-hij', 'gmeet:abc-defg-hij'),
        PatternExample('Join: https://meet.google.com/xyz-uvwx-stu', 'gmeet:xyz-uvwx-stu', source='outlook'),
        PatternExample('https://meet.google.com/abcd-efgh-ijkl', 'gmeet:abcd-efgh-ijkl'),
    ],
    negative_examples=[
        'https://meet.google.com/',
        'https://meet.google.com/lookup/abc',
    ],
)

# calendar event ids are opaque and not guaranteed stable, hence medium
google_calendar = RefPattern(
    id='google-calendar-v1',
    name='Google Calendar Event',
    description='Google Calendar event ids from URLs',
    regex=r'calendar\.google\.com/calendar/(?:event\?eid=|r/eventedit/)([a-zA-Z0-9_=-]+)',
    tool_type='google',
    confidence='medium',
    normalize=_prefixed('gcal'),
    examples=[
        PatternExample(
            'https://calendar.google.com/calendar/event?eid=NXJqbG1vNnRuYWJjZGVmZ2hpamtsbW5vcHFyc3R1dnd4eXoxMjM',
            'gcal:NXJqbG1vNnRuYWJjZGVmZ2hpamtsbW5vcHFyc3R1dnd4eXoxMjM',
        ),
        PatternExample('https://calendar.google.com/calendar/r/eventedit/abc123def456ghi789', 'gcal:abc123def456ghi789'),
    ],
    negative_examples=[
        'https://calendar.google.com/calendar/',
        'https://calendar.google.com/calendar/r/month',
    ],
)

google_docs_rawdata = RefPattern(
    id='google-docs-rawdata-v1',
    name='Google Docs Raw Data ID',
    description='Google Docs documentId field in JSON raw data',
    regex=r'"documentId"\s*:\s*"' + _DRIVE_ID + '"',
    tool_type='google',
    confidence='medium',
    normalize=_prefixed('gdoc'),
    examples=[
        PatternExample('{"documentId": "1AbC123XYZ456_defGHI789jkl", "title": "Doc"}', 'gdoc:1AbC123XYZ456_defGHI789jkl', source='google-rawdata'),
        PatternExample(f'{{"documentId":"{_SAMPLE_ID}"}}', f'gdoc:{_SAMPLE_ID}', source='google-rawdata'),
    ],
    negative_examples=[
        '{"documentId": "short"}',
    ],
)

google_meet_rawdata = RefPattern(
    id='google-meet-rawdata-v1',
    name='Google Meet Raw Data Code',
    description='Google Meet meetCode field in JSON raw data',
    regex=r'(?i)"meetCode"\s*:\s*"' + _MEET_CODE + '"',
    tool_type='google',
    confidence='medium',
    normalize=_prefixed('gmeet', lower=True),
    examples=[
        PatternExample('{"meetCode": "abc-defg-hij", "duration": 45}', 'gmeet:abc-defg-hij', source='google-rawdata'),
        PatternExample('{"meetCode":"xyz-uvwx-stu"}', 'gmeet:xyz-uvwx-stu', source='google-rawdata'),
    ],
    negative_examples=[
        '{"meetCode": "invalid"}',
    ],
)

PATTERNS = [
    google_docs,
    google_sheets,
    google_slides,
    google_drive_file,
    google_drive_folder,
    google_meet,
    google_calendar,
    google_docs_rawdata,
    google_meet_rawdata,
]
