"""
Figma file patterns.
"""
from patterns.registry import RefPattern, PatternExample

figma_file = RefPattern(
    id='figma-file-v1',
    name='Figma File',
    description='Figma file keys from file, design and prototype URLs',
    regex=r'figma\.com/(?:file|design|proto)/([A-Za-z0-9]{6,})',
    tool_type='figma',
    confidence='high',
    normalize=lambda m: f"figma:{m.group(1)}",
    examples=[
        PatternExample('https://www.figma.com/file/ABC123XYZ/Design', 'figma:ABC123XYZ'),
        PatternExample('Mocks: https://www.figma.com/design/Qw3rTy9Uiop/Checkout?node-id=1-2', 'figma:Qw3rTy9Uiop', source='jira'),
    ],
    negative_examples=[
        'https://www.figma.com/files/recent',
        'https://www.figma.com/community',
    ],
)

PATTERNS = [figma_file]
