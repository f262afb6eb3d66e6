from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import streamlit as st
from dotenv import load_dotenv

from services import config, ingredients, models, utils
from services.generation import get_generation_service
from services.round_engine import ChoppedEngine, RoundStateError
from services.security import RateLimiter, get_client_id

load_dotenv()
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(
    page_title="Chopped AI – Operator Console",
    page_icon="🔪",
    layout="wide",
)

SESSION_DEFAULTS = {
    "engine": None,
    "basket": ["", "", "", ""],
    "show_details": False,
}

for key, value in SESSION_DEFAULTS.items():
    st.session_state.setdefault(key, value)


def _new_engine() -> ChoppedEngine:
    return ChoppedEngine(
        models.initial_contestants(),
        get_generation_service(),
        use_personas=config.get_use_personas(),
        step_timeout=config.get_step_timeout(),
    )


def _engine() -> ChoppedEngine:
    if st.session_state["engine"] is None:
        st.session_state["engine"] = _new_engine()
    return st.session_state["engine"]


@st.cache_resource
def _limiter() -> RateLimiter:
    # shared by every session, keyed per client
    return RateLimiter(limit=config.get_rate_limit())


def _allowed(action: str) -> bool:
    decision = _limiter().check(f"{get_client_id(st.context.headers)}:{action}")
    if not decision.allowed:
        st.warning("Too many requests, wait a moment before trying again.")
    return decision.allowed


def _render_sidebar(engine: ChoppedEngine) -> None:
    state = engine.state
    st.sidebar.header("Game")
    st.sidebar.markdown(f"**Round:** {state.round_number} · **Status:** {state.status}")
    st.sidebar.markdown("**Active:** " + utils.join_labels(state.active))
    st.sidebar.markdown("**Chopped:** " + utils.join_labels(state.eliminated))
    st.session_state["show_details"] = st.sidebar.checkbox(
        "Show ingredient provenance", value=st.session_state["show_details"]
    )
    if state.status == "idle":
        with st.sidebar.expander("Models"):
            for contestant in engine.contestants:
                options = [option["id"] for option in models.AVAILABLE_MODELS[contestant.id]]
                choice = st.selectbox(
                    contestant.id,
                    options,
                    index=options.index(contestant.model_id) if contestant.model_id in options else 0,
                    key=f"model-{contestant.id}",
                )
                if choice != contestant.model_id:
                    engine.set_contestant_model(contestant.id, choice)
    if st.sidebar.button("New competition"):
        st.session_state["engine"] = _new_engine()
        st.session_state["basket"] = ["", "", "", ""]
        st.rerun()
    st.sidebar.markdown("### History")
    for event in state.history[-10:]:
        st.sidebar.caption(f"{event.timestamp.strftime('%H:%M:%S')} · {utils.format_event(event)}")


def _render_basket(engine: ChoppedEngine) -> None:
    next_round = engine.state.round_number + 1
    course = utils.course_label(next_round)
    st.subheader(f"Round {next_round}: {course}")

    if engine.state.round_number == 0 and st.button("Generate chef intros"):
        if _allowed("intros"):
            asyncio.run(engine.generate_intros())
            st.rerun()

    catalog_course = utils.catalog_course(next_round)
    if st.button("Randomize basket"):
        st.session_state["basket"] = ingredients.get_random_basket(catalog_course)
        st.rerun()

    options = ingredients.get_ingredients(catalog_course, st.session_state["show_details"])
    values = [""] + [option.value for option in options]
    labels = {option.value: option.label for option in options}
    basket: List[str] = []
    columns = st.columns(utils.BASKET_SIZE)
    for index, column in enumerate(columns):
        current = st.session_state["basket"][index]
        with column:
            basket.append(
                st.selectbox(
                    f"Item {index + 1}",
                    values,
                    index=values.index(current) if current in values else 0,
                    format_func=lambda value: labels.get(value, "—"),
                    key=f"basket-{index}-{engine.state.round_number}",
                )
            )
    st.session_state["basket"] = basket

    if st.button("Open basket & start round", type="primary"):
        if not _allowed("round"):
            return
        try:
            asyncio.run(engine.run_round(basket))
        except RoundStateError as exc:
            st.error(str(exc))
            return
        st.rerun()


def _render_contestants(engine: ChoppedEngine) -> None:
    state = engine.state
    loading = engine.loading_status()
    columns = st.columns(len(engine.contestants))
    for column, contestant in zip(columns, engine.contestants):
        with column:
            chopped = contestant.id in state.eliminated
            st.markdown(f"### {'~~' + contestant.name + '~~' if chopped else contestant.name}")
            if contestant.portrait_ref:
                st.image(contestant.portrait_ref)
            if contestant.bio:
                st.caption(contestant.bio)
            if chopped:
                st.write("Chopped")
                continue
            dish = state.dishes.get(contestant.id)
            if dish:
                st.markdown(f"**{dish.title}**")
                if dish.image_ref:
                    st.image(dish.image_ref)
                st.write(dish.narrative)
            elif state.round_number:
                st.write("No dish" if loading.get(contestant.id) == "error" else f"Status: {loading.get(contestant.id)}")
            if state.status == "judging" and st.button("Chop", key=f"chop-{contestant.id}"):
                try:
                    engine.eliminate(contestant.id)
                except RoundStateError as exc:
                    st.error(str(exc))
                else:
                    st.session_state["basket"] = ["", "", "", ""]
                    st.rerun()


def _render_winner(engine: ChoppedEngine, winner_id: Optional[str]) -> None:
    winner = engine.contestant(winner_id) if winner_id else None
    st.title(f"🏆 {winner.name if winner else 'Nobody'} wins!")
    dish = engine.state.dishes.get(winner_id) if winner_id else None
    if dish:
        st.subheader(f"Winning dish from Round {engine.state.round_number}: {dish.title}")
        if dish.image_ref:
            st.image(dish.image_ref)


def main() -> None:
    st.title("Chopped AI – Operator Console")
    engine = _engine()
    _render_sidebar(engine)
    if engine.state.status == "completed":
        _render_winner(engine, engine.winner)
        return
    if engine.state.status == "idle":
        _render_basket(engine)
    elif engine.state.status == "judging":
        st.subheader(" • ".join(engine.state.basket))
        st.markdown("**Who will be CHOPPED?**")
    _render_contestants(engine)


if __name__ == "__main__":
    main()
