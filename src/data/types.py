"""Type aliases for data structures."""

# Raw row as decoded from the screening service JSON
RawOptionDict = dict[str, str | int | float | bool | None]

# Option.to_dict() output
OptionDict = dict[str, str | float | None]

# Value carried by a single filter operation on the wire
OperationValue = str | int | float | list[float]

# JSON body posted to the screening service
QueryPayload = dict[str, bool | int | str | list[dict[str, OperationValue]]]

# Record returned by the saved-filter service
SavedFilterRecord = dict[str, str | int | bool | None]
