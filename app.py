"""Chat interface using Streamlit."""

import streamlit as st

from newsrag import Services
from newsrag.config import config
from newsrag.errors import InternalProcessingError, InvalidRequest

MAX_CONTEXT_PREVIEW_LENGTH = 200

config.setup_logging()
logger = config.get_logger(__name__)


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        defaults = {
            "services": None,
            "conversation_manager": None,
            "session_id": None,
            "last_contexts": [],
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def is_system_ready() -> bool:
        """Check if the system is properly initialized.

        Returns:
            bool: True if the conversation manager is initialized.
        """
        return st.session_state.get("conversation_manager") is not None


def validate_configuration() -> bool:
    """Validate application configuration and show user feedback.

    Returns:
        bool: True if configuration is valid, False otherwise.
    """
    try:
        config.validate()
    except ValueError as e:
        st.error(f"Configuration Error: {e}")
        return False
    else:
        return True


def initialize_system() -> bool:
    """Connect to the index, the providers and the conversation store.

    Returns:
        bool: True if initialization succeeds, False otherwise.
    """
    try:
        with st.spinner("Initializing system..."):
            services = Services.from_config()
            st.session_state.services = services
            st.session_state.conversation_manager = services.conversation_manager()

        logger.info("Chat system initialized successfully")
        st.success("System initialized successfully!")

    except (ValueError, InternalProcessingError) as e:
        logger.exception("Failed to initialize system")
        st.error(f"Failed to initialize system: {e}")
        return False
    else:
        return True


def render_sidebar() -> None:
    """Render the sidebar with system status and session controls."""
    with st.sidebar:
        st.header("System Configuration")

        if (
            st.button("Initialize System", use_container_width=True)
            and validate_configuration()
            and initialize_system()
        ):
            st.rerun()

        st.divider()
        st.subheader("System Status")
        if SessionState.is_system_ready():
            st.write("**System:** Ready")
        else:
            st.write("**System:** Not Initialized")
        st.write(f"**Session:** {st.session_state.session_id or 'None'}")

        st.divider()
        if SessionState.is_system_ready() and st.session_state.session_id:
            st.subheader("Conversation")
            if st.button("Clear Session", use_container_width=True):
                try:
                    st.session_state.conversation_manager.clear_session(
                        st.session_state.session_id
                    )
                except InternalProcessingError:
                    logger.exception("Failed to clear session")
                    st.error("Failed to clear session.")
                    return
                st.session_state.session_id = None
                st.session_state.last_contexts = []
                st.success("Session cleared!")
                st.rerun()


def render_conversation_history() -> None:
    """Render the stored transcript for the current session."""
    session_id = st.session_state.session_id
    if not session_id:
        return

    try:
        messages = st.session_state.conversation_manager.get_history(session_id)
    except InternalProcessingError:
        logger.exception("Failed to fetch history")
        st.error("Failed to fetch history.")
        return

    for message in messages:
        role = "user" if message.sender == "user" else "assistant"
        with st.chat_message(role):
            st.write(message.text)


def render_chat_interface() -> None:
    """Render the chat input and handle a submitted question."""
    question = st.chat_input("Ask anything about today's news...")
    if question is None:
        return

    with st.spinner("Processing..."):
        try:
            result = st.session_state.conversation_manager.answer_question(
                question, st.session_state.session_id
            )
        except InvalidRequest as e:
            st.warning(str(e))
            return
        except InternalProcessingError:
            logger.exception("Question processing failed")
            st.error("An error occurred while processing your request.")
            return

    st.session_state.session_id = result.session_id
    st.session_state.last_contexts = result.contexts
    st.rerun()


def render_retrieved_contexts() -> None:
    """Show the passages used for the most recent answer."""
    if not st.session_state.last_contexts:
        return

    if st.checkbox("Show Retrieved Contexts (Debug)"):
        for i, hit in enumerate(st.session_state.last_contexts):
            with st.expander(
                f"Context {i + 1} - Similarity: {hit.score:.4f} - Source: {hit.title}",
                expanded=False,
            ):
                st.code(
                    hit.text[:MAX_CONTEXT_PREVIEW_LENGTH] + "..."
                    if len(hit.text) > MAX_CONTEXT_PREVIEW_LENGTH
                    else hit.text,
                )


def main() -> None:
    """Main entry point for the Streamlit chat application."""
    st.set_page_config(page_title="NewsRAG Chat", layout="wide")

    SessionState.initialize()

    st.title("NewsRAG - Ask the News")
    st.markdown("---")

    render_sidebar()

    if not SessionState.is_system_ready():
        st.info("Please initialize the system using the sidebar to get started.")
        return

    render_conversation_history()
    render_retrieved_contexts()
    render_chat_interface()


if __name__ == "__main__":
    main()
