#!/usr/bin/env python3
"""
Biological Age - Interactive Web Questionnaire
Streamlit app for estimating biological age from lifestyle answers
"""

import os
from datetime import datetime

import streamlit as st

from bioage_catalog import MODEL_VERSIONS, DEFAULT_MODEL
from bioage_engine import BioAgeEngine
from bioage_history import HistoryStore
from bioage_recommendations import RecommendationEngine, get_recommendation_engine, identify_lifestyle_pattern
from bioage_report import (
    catalog_frame,
    category_label,
    category_scores_figure,
    factor_impact_figure,
    factors_frame,
    history_frame,
    to_csv,
    trajectory_figure,
    trajectory_frame,
)
from bioage_trajectory import Intervention, project_trajectory
from bioage_validation import validate_answers

HISTORY_PATH = os.environ.get("BIOAGE_HISTORY", os.path.expanduser("~/.bioage_history.json"))

# (answer key, label, choices); the first choice "" means unanswered
QUESTIONS = {
    "basic": [
        ("gender", "Gender", ["male", "female", "other"]),
    ],
    "diet": [
        ("diet-type", "Diet type", ["standard", "mediterranean", "vegetarian", "vegan", "paleo", "carnivore"]),
        ("diet-quality", "Overall diet quality", ["poor", "average", "good", "excellent"]),
        ("processed-food", "Processed food intake", ["high", "moderate", "low", "none"]),
        ("sugar-intake", "Added sugar intake", ["high", "moderate", "low", "none"]),
        ("water-intake", "Daily water intake", ["low", "moderate", "optimal", "high"]),
        ("fasting", "Do you practice intermittent fasting?", ["no", "yes"]),
    ],
    "activity": [
        ("exercise", "Exercise frequency", ["none", "occasional", "regular", "daily"]),
        ("exercise-intensity", "Exercise intensity", ["low", "moderate", "high", "varied"]),
        ("strength-training", "Strength training", ["none", "occasional", "regular", "frequent"]),
        ("daily-movement", "Daily movement outside exercise", ["sedentary", "low", "moderate", "high"]),
    ],
    "lifestyle": [
        ("smoker", "Do you smoke?", ["no", "former", "yes"]),
        ("alcohol", "Alcohol consumption", ["none", "light", "moderate", "heavy", "excessive"]),
        ("sleep", "Hours of sleep per night", ["less", "optimal", "more"]),
        ("sleep-quality", "Sleep quality", ["poor", "fair", "good"]),
        ("stress", "Stress level", ["low", "moderate", "high", "severe"]),
        ("social", "Social life", ["isolated", "limited", "moderate", "strong"]),
        ("mental-activity", "Mental stimulation", ["low", "moderate", "high"]),
        ("mindfulness", "Mindfulness / meditation", ["none", "occasional", "regular", "daily"]),
    ],
    "environment": [
        ("outdoor-time", "Time spent outdoors", ["minimal", "moderate", "significant", "extensive"]),
        ("nature-exposure", "Exposure to nature", ["rare", "occasional", "frequent", "immersive"]),
        ("sun-exposure", "Sun exposure", ["minimal", "moderate-protected", "high-protected", "high-unprotected"]),
        ("air-quality", "Air quality where you live", ["poor", "moderate", "good", "excellent"]),
        ("screen-time", "Daily screen time", ["low", "moderate", "high", "excessive"]),
        ("blue-light", "Do you limit blue light at night?", ["no", "yes"]),
    ],
    "medical": [
        ("medications", "Regular medications", ["none", "one", "few", "multiple"]),
        ("family-longevity", "Family longevity", ["short", "average", "long"]),
        ("checkups", "Medical checkups", ["never", "occasional", "regular", "comprehensive"]),
        ("supplements", "Supplement use", ["none", "minimal", "moderate", "extensive"]),
    ],
    "mentalHealth": [
        ("anxiety", "Anxiety", ["none", "mild", "moderate", "severe"]),
        ("depression", "Low mood / depression", ["none", "mild", "moderate", "severe"]),
        ("mental-health-condition", "Diagnosed mental health condition", ["none", "managed", "unmanaged"]),
    ],
    "socialConnection": [
        ("close-relationships", "Close relationships", ["none", "few", "several", "many"]),
        ("community-involvement", "Community involvement", ["none", "occasional", "regular", "active"]),
    ],
}

CONDITIONS = ["heart-disease", "diabetes", "hypertension", "cancer", "respiratory", "autoimmune", "other"]

# Page config
st.set_page_config(
    page_title="Biological Age Calculator",
    page_icon="🧬",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def load_engine(model: str) -> BioAgeEngine:
    return BioAgeEngine.from_model(model)


@st.cache_resource
def load_recommendations() -> RecommendationEngine:
    return get_recommendation_engine()


history = HistoryStore(HISTORY_PATH)

st.markdown("""
<style>
    .main-header {
        font-size: 3rem;
        font-weight: bold;
        color: #1f77b4;
        text-align: center;
        margin-bottom: 1rem;
    }
    .sub-header {
        font-size: 1.2rem;
        text-align: center;
        color: #666;
        margin-bottom: 2rem;
    }
    .result-box {
        padding: 2rem;
        border-radius: 10px;
        background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
        color: white;
        text-align: center;
        margin: 2rem 0;
    }
    .result-number {
        font-size: 4rem;
        font-weight: bold;
        margin: 1rem 0;
    }
</style>
""", unsafe_allow_html=True)

st.markdown('<div class="main-header">🧬 Biological Age Calculator</div>', unsafe_allow_html=True)
st.markdown('<div class="sub-header">Estimate your biological age from lifestyle, environment and health factors</div>', unsafe_allow_html=True)

with st.sidebar:
    st.header("⚙️ Model")
    model = st.selectbox(
        "Scoring model",
        list(MODEL_VERSIONS),
        index=list(MODEL_VERSIONS).index(DEFAULT_MODEL),
        help="classic: six categories; enhanced: adds mental health and social connection"
    )
    engine = load_engine(model)
    rec_engine = load_recommendations()

    st.divider()

    st.header("📋 Instructions")
    st.markdown("""
    1. **Enter your age**, height and weight
    2. **Answer the questions** you can; blanks count as no evidence
    3. **Get your results**, recommendations and a 10-year trajectory
    """)

    st.divider()

    st.header("ℹ️ Interpretation")
    st.markdown("""
    - Biological = Age → Average aging
    - Biological < Age → Slower aging
    - Biological > Age → Faster aging

    The range shown is a heuristic band from factor confidences,
    not a statistical interval.
    """)

if 'answers' not in st.session_state:
    st.session_state.answers = {}
if 'show_results' not in st.session_state:
    st.session_state.show_results = False

tab1, tab2, tab3, tab4 = st.tabs(["📝 Questionnaire", "📊 Results", "🔍 What-If & Trajectory", "🕒 History"])

with tab1:
    st.header("Complete Your Health Assessment")
    answers = st.session_state.answers

    col1, col2, col3 = st.columns(3)
    with col1:
        answers['age'] = st.number_input("What is your age?", min_value=18, max_value=120, value=35)
    with col2:
        answers['height'] = st.number_input("Height (cm)", min_value=100, max_value=250, value=170)
    with col3:
        answers['weight'] = st.number_input("Weight (kg)", min_value=30, max_value=300, value=70)

    st.divider()

    for category, questions in QUESTIONS.items():
        if category not in engine.categories:
            continue
        with st.expander(f"{category_label(category)} ({len(questions)} questions)", expanded=category == "basic"):
            col1, col2 = st.columns(2)
            for i, (key, label, choices) in enumerate(questions):
                with (col1 if i % 2 == 0 else col2):
                    answers[key] = st.selectbox(
                        label,
                        [""] + choices,
                        key=f"q_{key}",
                        format_func=lambda x: "-- select --" if x == "" else x.replace("-", " ").capitalize()
                    )
            if category == "medical":
                answers['conditions'] = st.multiselect(
                    "Chronic conditions (select all that apply)",
                    CONDITIONS,
                    default=[],
                    format_func=lambda x: x.replace("-", " ").capitalize()
                )

    st.divider()

    col1, col2, col3 = st.columns([1, 1, 1])
    with col2:
        if st.button("🧬 Calculate My Biological Age", use_container_width=True, type="primary"):
            check = validate_answers(answers)
            if check.valid:
                st.session_state.show_results = True
                st.session_state.saved = False
                st.rerun()
            else:
                for key, msg in check.errors.items():
                    st.error(f"**{key}**: {msg}")

with tab2:
    if st.session_state.show_results:
        answers = st.session_state.answers
        result = engine.compute(answers)

        if not st.session_state.get("saved"):
            history.save(answers, result)
            st.session_state.saved = True

        st.markdown(f"""
        <div class="result-box">
            <h2>Your Biological Age</h2>
            <div class="result-number">{result.biological_age}</div>
            <p style="font-size: 1.5rem;">Difference: {result.difference:+d} years</p>
            <p style="font-size: 1.1rem; margin-top: 1rem;">
                Likely range: {result.lower_bound}-{result.upper_bound} | Chronological Age: {result.chronological_age}
            </p>
        </div>
        """, unsafe_allow_html=True)

        if result.difference <= -5:
            st.success("🌟 Exceptional! Your habits point to markedly slower aging.", icon="✅")
        elif result.difference < 0:
            st.success("✅ Good! You're aging a little slower than average.")
        elif result.difference == 0:
            st.info("You're aging at about the average rate.", icon="ℹ️")
        elif result.difference < 5:
            st.warning("⚠️ Slightly accelerated aging. Room for improvement.")
        else:
            st.error("🚨 Accelerated aging. Consider talking to a healthcare provider.")

        st.metric("Overall health index", f"{result.health_index:.1f} / 100")

        st.divider()
        st.header("📊 Breakdown")

        col1, col2 = st.columns(2)
        with col1:
            st.plotly_chart(category_scores_figure(result), use_container_width=True)
        with col2:
            st.plotly_chart(factor_impact_figure(result), use_container_width=True)

        st.dataframe(factors_frame(result), use_container_width=True, hide_index=True)

        st.divider()
        st.header("💡 Recommendations")
        pattern = identify_lifestyle_pattern(answers, engine=rec_engine)
        if pattern is not None:
            st.caption(f"Lifestyle pattern: **{pattern.pattern.replace('-', ' ')}**")
        icons = {"high": "🔴", "medium": "🟠", "low": "🟢"}
        for i, rec in enumerate(rec_engine.generate(answers, result), 1):
            st.markdown(
                f"{i}. {icons[rec.priority]} **{rec.category}**: {rec.text}  \n"
                f"   _evidence: {rec.evidence_rating}, effect: {rec.time_to_effect}_"
            )

        st.divider()
        st.download_button(
            label="📥 Download Results (CSV)",
            data=to_csv(result, answers),
            file_name=f"bioage_results_{result.chronological_age}yo.csv",
            mime="text/csv"
        )

        with st.expander("Scoring table"):
            st.dataframe(catalog_frame(engine.catalog), use_container_width=True, hide_index=True)
    else:
        st.info("👈 Complete the questionnaire in the first tab to see your results!")

with tab3:
    if st.session_state.show_results:
        st.header("🔍 What-If Analysis")
        st.write("See how specific lifestyle changes would affect your biological age over 10 years")

        col1, col2 = st.columns(2)

        with col1:
            st.subheader("Proposed Changes")
            interventions = []
            if st.checkbox("Exercise regularly"):
                interventions.append(Intervention("exercise", st.selectbox("New exercise frequency", ["regular", "daily"])))
            if st.checkbox("Improve diet"):
                interventions.append(Intervention("diet-quality", "excellent"))
                interventions.append(Intervention("processed-food", "low"))
            if st.checkbox("Sleep 7-9 hours"):
                interventions.append(Intervention("sleep", "optimal"))
            if st.checkbox("Quit smoking"):
                interventions.append(Intervention("smoker", "former"))
            if st.checkbox("Reduce stress"):
                interventions.append(Intervention("stress", "low"))
                interventions.append(Intervention("mindfulness", "regular"))

        traj = project_trajectory(st.session_state.answers, interventions, engine=engine)

        with col2:
            st.subheader("Projected Results")
            if interventions:
                improvement = traj.improvement
                st.metric(label="Current biological age", value=f"{traj.current_calculation.biological_age} years")
                st.metric(
                    label="With changes",
                    value=f"{traj.modified_calculation.biological_age} years",
                    delta=f"{-improvement:.0f} years",
                    delta_color="inverse"
                )
                if improvement > 0:
                    st.success(f"🎉 You could reduce your biological age by **{improvement:.0f} years**!")
                elif improvement < 0:
                    st.warning(f"⚠️ These changes would increase age by {-improvement:.0f} years")
                else:
                    st.info("No significant change")
            else:
                st.info("Select at least one change to compare trajectories")

        st.plotly_chart(trajectory_figure(traj), use_container_width=True)
        st.dataframe(trajectory_frame(traj), use_container_width=True, hide_index=True)
    else:
        st.info("👈 Calculate your biological age first to use What-If Analysis!")

with tab4:
    st.header("🕒 Previous Calculations")
    entries = history.load()
    if entries:
        st.dataframe(history_frame(entries), use_container_width=True, hide_index=True)
        col1, col2 = st.columns(2)
        with col1:
            idx = st.number_input("Entry to delete", min_value=0, max_value=len(entries) - 1, value=0)
            if st.button("Delete entry"):
                history.delete(int(idx))
                st.rerun()
        with col2:
            if st.button("Clear history", type="secondary"):
                history.clear()
                st.rerun()
    else:
        st.info("No saved calculations yet.")

st.divider()
st.markdown(f"""
<div style='text-align: center; color: #666; padding: 2rem;'>
    <p><strong>Disclaimer:</strong> This tool is for educational purposes only.
    Not a substitute for professional medical advice.</p>
    <p>{engine.version} | {datetime.now():%Y}</p>
</div>
""", unsafe_allow_html=True)
