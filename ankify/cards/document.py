CARDS_SECTION_HEADING = '## Anki Cards'


def append_cards_section(document: str, raw_reply: str) -> str:
    """Append the model reply under its own heading at the end of a note."""
    return (document or '') + f'\n\n{CARDS_SECTION_HEADING}\n\n' + (raw_reply or '')
