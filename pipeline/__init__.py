"""
Pipeline package for the thermal detection handler.

Contains:
- `state`  : Typed `ThermalState` definition
- `errors` : Terminal error taxonomy and status mapping
- `tools`  : Request building and the detection-extraction tool
- `nodes`  : LangGraph node callables operating over `ThermalState`
- `graph`  : StateGraph builder and compiled `pipeline`
"""
