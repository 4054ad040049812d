import os
import streamlit as st
import requests

API_BASE = os.environ.get("API_BASE", "http://127.0.0.1:8000")

st.set_page_config(page_title="Morning Plan", page_icon="🌅", layout="centered")
st.title("🌅 Good Morning! Let's Plan Your Day")

if "planned_tasks" not in st.session_state:
    st.session_state.planned_tasks = []
if "plan_source" not in st.session_state:
    st.session_state.plan_source = None
if "plan_error" not in st.session_state:
    st.session_state.plan_error = None


def request_plan(text: str):
    try:
        r = requests.post(f"{API_BASE}/tasks/plan", json={"text": text}, timeout=30)
    except requests.RequestException as e:
        return {"status": "error", "message": f"Planner unreachable: {e}"}
    if r.status_code == 400:
        return {"status": "error", "message": r.json().get("detail", "Invalid input.")}
    return r.json()


def describe(task: dict) -> str:
    parts = []
    if task.get("start_time"):
        span = task["start_time"]
        if task.get("end_time"):
            span += f"–{task['end_time']}"
        parts.append(f"🕒 {span}")
    if task.get("estimated_duration") is not None:
        parts.append(f"⏱ {task['estimated_duration']} min")
    parts.append(f"⚑ {task.get('priority', 'medium')}")
    return " · ".join(parts)


priorities = st.text_area(
    "What are your priorities today?",
    placeholder="• Work on feature for 2 hours at 10am (high priority)\n• Gym at 6pm",
    height=160,
)

if st.button("Preview tasks"):
    st.session_state.plan_error = None
    with st.spinner("Parsing your plan..."):
        resp = request_plan(priorities)
    if resp.get("status") != "ok":
        st.session_state.plan_error = resp.get("message", "Failed to parse tasks.")
        st.session_state.planned_tasks = []
    else:
        result = resp.get("result", {})
        st.session_state.planned_tasks = result.get("tasks", [])
        st.session_state.plan_source = result.get("source")
        if result.get("message"):
            st.session_state.plan_error = result["message"]

if st.session_state.plan_error:
    st.warning(st.session_state.plan_error)

if st.session_state.planned_tasks:
    st.subheader("Review and confirm your tasks")
    if st.session_state.plan_source:
        st.caption(f"Parsed by: {st.session_state.plan_source}")
    for idx, task in enumerate(list(st.session_state.planned_tasks)):
        cols = st.columns([6, 1])
        cols[0].markdown(f"**{task['title']}**  \n{describe(task)}")
        if cols[1].button("✖", key=f"remove_{idx}"):
            st.session_state.planned_tasks.pop(idx)
            st.rerun()
    if st.button("Confirm plan"):
        st.success(f"Saved {len(st.session_state.planned_tasks)} task(s) for today.")
        st.json(st.session_state.planned_tasks)
