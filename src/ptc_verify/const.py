ERRORS = {
  "E_SOURCE_OPEN": "Capture cannot be opened",
  "E_SOURCE_READ": "Capture cannot be read to the end",
  "E_ORDER": "Frame timestamp earlier than its predecessor",
  "E_TIMECODE_FORMAT": "Time-code frame malformed",
  "E_TIMECODE_SEQUENCE": "Time-code counter out of sequence",
  "E_TIMECODE_PERIOD": "Time-code spacing not constant",
}
