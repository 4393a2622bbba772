ALIGN_LEFT = "left"
ALIGN_RIGHT = "right"


def Clamp(minimum, x, maximum):
    return max(minimum, min(x, maximum))


def _FormatCell(value : str, length : int, align : str = ALIGN_LEFT) -> str:
    if align == ALIGN_RIGHT:
        return value.rjust(length)
    return value.ljust(length)


def FormatTable(header : list[str], data : list[list[str]], align : list[str] = None, divider : str = "   ") -> str:
    """
    Renders rows as a fixed width text table.

    Every column is as wide as its longest cell (header included). Header cells are always left aligned,
    data cells follow ``align`` (left when not given). A line of dashes spanning the whole width separates
    the header from the data, and trailing whitespace is trimmed from every line.
    """
    if align == None:
        align = []
    columnLengths = [len(it) for it in header]
    for row in data:
        for idx, it in enumerate(row):
            columnLengths[idx] = max(columnLengths[idx], len(it))
    totalLength = sum(columnLengths) + len(divider) * (len(columnLengths) - 1)

    def formatLine(values, alignment):
        cells = []
        for idx, value in enumerate(values):
            cellAlign = alignment[idx] if idx < len(alignment) else ALIGN_LEFT
            cells.append(_FormatCell(value, columnLengths[idx], cellAlign))
        return divider.join(cells).rstrip()

    lines = [formatLine(header, []), "-" * totalLength]
    for row in data:
        lines.append(formatLine(row, align))
    return "\n".join(lines)
