"""
Hypothesis Strategies for Property-Based Testing

Custom strategies for generating attachment lists and segment limits.
"""

import string

from hypothesis import strategies as st

from jiradl.domain.export import AttachmentDescriptor

ticket_keys = st.builds(
    lambda project, number: f"{project}-{number}",
    st.sampled_from(["PROJ", "OPS", "WEB"]),
    st.integers(min_value=1, max_value=9999),
)

filenames = st.text(alphabet=string.ascii_lowercase + string.digits, min_size=1, max_size=12).map(
    lambda stem: f"{stem}.bin"
)


@st.composite
def attachment_descriptors(draw, max_size: int = 500):
    """Generate an attachment with a size in [0, max_size]; 0 means unknown."""
    name = draw(filenames)
    return AttachmentDescriptor(
        ticket_key=draw(ticket_keys),
        filename=name,
        total_size=draw(st.integers(min_value=0, max_value=max_size)),
        content_locator=f"https://jira.example.com/att/{draw(st.uuids())}/{name}",
    )


attachment_lists = st.lists(attachment_descriptors(), max_size=40)

segment_limits = st.integers(min_value=1, max_value=300)
